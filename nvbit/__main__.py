#!/usr/bin/python3 -u
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                Main NVIDIA BIT analyzer program.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#

import getopt, sys
from . import analyzers, formatters, romdata, util


def analyze(file_path, options):
	"""Main function for analysis."""

	# The extension is only a hint.
	if not util.has_extension(file_path, '.rom'):
		print('Warning: File does not have .rom extension', file=sys.stderr)

	# Load the entire image.
	try:
		rom = romdata.load_rom(file_path)
	except OSError:
		print('Error: Could not open file', file_path, file=sys.stderr)
		return 1

	# Open the secondary output file if requested.
	out_files = [sys.stdout]
	out_file = None
	if options['output']:
		try:
			out_file = open(options['output'], 'w')
			out_files.append(out_file)
		except OSError:
			print('Warning: Could not open output file', options['output'], file=sys.stderr)

	try:
		formatter = formatters.TextFormatter(out_files, options)
		analyzer = analyzers.BITAnalyzer()

		# Disable debug mode on the analyzer and decoders.
		if not options['debug']:
			dummy_func = lambda *args: None
			analyzer.debug_print = dummy_func
			for decoder in analyzer.decoders:
				decoder.debug_print = dummy_func

		try:
			analyzer.analyze(rom, formatter, options['start'])
		except analyzers.NoDataError as e:
			print('Error:', e, file=sys.stderr)
			return 1
		except analyzers.BITHeaderNotFoundError:
			# Already reported by the formatter.
			return 1
		except Exception as e:
			util.log_traceback('analyzing', file_path)
			print('Error: analysis of', file_path, 'failed:', e, file=sys.stderr)
			return 1
	finally:
		if out_file:
			out_file.close()

	print()
	print('Parsing completed successfully!')
	return 0


def main():
	# Set default options.
	options = {
		'debug': False,
		'output': None,
		'start': None,
	}

	# Parse arguments.
	try:
		args, remainder = getopt.gnu_getopt(sys.argv[1:], 'do:s:', ['debug', 'output=', 'start='])
	except getopt.GetoptError as e:
		print(e, file=sys.stderr)
		remainder = []
		args = []
	for opt, arg in args:
		if opt in ('-d', '--debug'):
			options['debug'] = True
		elif opt in ('-o', '--output'):
			options['output'] = arg
		elif opt in ('-s', '--start'):
			try:
				options['start'] = int(arg, 0)
			except ValueError:
				print('Invalid start offset', arg, file=sys.stderr)
				return 1

	if len(remainder) > 0:
		# The output file can also be given after the ROM file.
		if len(remainder) > 1 and not options['output']:
			options['output'] = remainder[1]

		return analyze(remainder[0], options)

	# Print usage.
	usage = '''
Usage: python3 -m nvbit [-d] [-o output_file] [-s start_offset] rom_file [output_file]

       rom_file      Path to the .rom file to parse
       output_file   Optional output text file; the report is also written
                     to standard output.

       -d    Enable debug output.
       -o    Set the output text file.
       -s    Start the BIT header search at the given offset instead of
             the PCI expansion ROM base (prefix with 0x for hex).
'''
	print(usage, file=sys.stderr)
	return 1

if __name__ == '__main__':
	sys.exit(main())
