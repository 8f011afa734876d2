#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                Utility functions.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
import re, traceback

ascii_backspace_pattern = re.compile(b'''[\\x00-\\xFF]\\x08''')

error_log_path = 'nvbit_error.log'


def has_extension(file_name, extension):
	"""Returns True if file_name ends with the given extension (including the dot)."""
	return len(file_name) >= len(extension) and file_name[-len(extension):] == extension

def hex_lines(data, prefix='', per_line=16):
	"""Generate hex dump lines of per_line two-digit groups from a bytes.
	   Every group is followed by a space, like the dumps from the NVIDIA tools."""
	for offset in range(0, len(data), per_line):
		yield prefix + ''.join('{0:02x} '.format(byte) for byte in data[offset:offset + per_line])

def log_traceback(*args):
	"""Log to nvbit_error.log, including any outstanding traceback."""

	elems = ['===[ While']
	for elem in args:
		elems.append(str(elem))
	elems.append(']===\n')
	output = ' '.join(elems)

	with open(error_log_path, 'a') as f:
		f.write(output)
		traceback.print_exc(file=f)

def read_string(data, terminator=b'\\x00', ascii_backspace=True):
	"""Read a terminated string (by NUL by default) from a bytes."""

	# Trim to terminator.
	match = re.search(terminator, data)
	if match:
		data = data[:match.start()]

	# Look for ASCII backspaces and apply them accordingly.
	if ascii_backspace:
		replaced = 1
		while replaced:
			data, replaced = ascii_backspace_pattern.subn(b'', data)

	# Decode as CP437.
	return data.decode('cp437', 'ignore')
