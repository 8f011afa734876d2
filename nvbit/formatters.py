#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                Data output formatting classes.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
from . import decoders, util

class Formatter:
	def __init__(self, out_files, options=None):
		"""Initialize a formatter with the given output files and options.
		   Every line of output is written to all output files."""

		self.out_files = out_files
		self.options = options or {}

	def begin(self, rom):
		"""Begin the formatter's output."""
		pass

	def end(self):
		"""End the formatter's output."""
		pass

	def output(self, text):
		"""Write text to all output files."""
		for out_file in self.out_files:
			out_file.write(text)

	def output_line(self, line=''):
		self.output(line + '\n')

	def output_rom_base(self, offset, pci_data):
		"""Output the PCI expansion ROM location."""
		raise NotImplementedError()

	def output_header(self, header):
		"""Output the BIT header fields."""
		raise NotImplementedError()

	def output_token(self, token, payload):
		"""Output a token directory entry and its decoded payload."""
		raise NotImplementedError()

	def output_truncated(self, truncated):
		"""Output a token directory entry which extends past the end of the image."""
		raise NotImplementedError()

	def output_error(self, message):
		"""Output a fatal error message."""
		self.output_line('Error: ' + message)


class TextFormatter(Formatter):
	"""Plain text report, laid out like the NVIDIA ROM parser's report."""

	def __init__(self, *args, **kwargs):
		super().__init__(*args, **kwargs)

		# One render function per payload variant.
		self._payload_renderers = {
			decoders.NoData: self._render_no_data,
			decoders.Nop: self._render_nop,
			decoders.BoundaryViolation: self._render_boundary_violation,
			decoders.UnrecognizedLayout: self._render_title,
			decoders.BIOSData: self._render_bios_data,
			decoders.StringTable: self._render_string_table,
			decoders.RawBytes: self._render_raw_bytes,
		}

	def begin(self, rom):
		self.output_line('NVIDIA ROM File Analysis')
		self.output_line('========================')
		self.output_line()
		self.output_line('File: ' + rom.file_name)
		self.output_line('Size: {0} bytes'.format(len(rom)))
		self.output_line()

	def output_rom_base(self, offset, pci_data):
		self.output_line('PCI Expansion ROM found at offset: 0x{0:x}'.format(offset))
		if pci_data:
			self.output_line('PCI Data Structure at offset 0x{0:x}: vendor 0x{1:04x} device 0x{2:04x} revision {3} class 0x{4:06x}'.format(*pci_data))
		self.output_line()

	def output_header(self, header):
		self.output_line('BIT Header found at offset: 0x{0:x}'.format(header.offset))
		self.output_line()
		self.output_line('BIT Header:')
		self.output_line('  ID: 0x{0:x}'.format(header.id))
		self.output_line('  Signature: "{0}"'.format(util.read_string(header.signature, ascii_backspace=False)))
		self.output_line('  BCD Version: 0x{0:x}'.format(header.bcd_version))
		self.output_line('  Header Size: {0} bytes'.format(header.header_size))
		self.output_line('  Token Size: {0} bytes'.format(header.token_size))
		self.output_line('  Token Entries: {0}'.format(header.token_entries))
		self.output_line('  Checksum: 0x{0:x}'.format(header.checksum))
		self.output_line()
		self.output_line('BIT Tokens:')

	def output_token(self, token, payload):
		self.output_line('  Token {0}: {1} (0x{2:x})'.format(token.index, payload.name, token.id))
		self.output_line('    Data Version: {0}'.format(token.data_version))
		self.output_line('    Data Size: {0} bytes'.format(token.data_size))
		self.output_line('    Data Pointer: 0x{0:x}'.format(token.data_pointer))

		# Render payload according to its variant.
		renderer = self._payload_renderers.get(type(payload))
		if not renderer:
			raise NotImplementedError('no renderer for ' + payload.__class__.__name__)
		renderer(payload)

		self.output_line()

	def output_truncated(self, truncated):
		self.output_error('Token {0} extends beyond ROM boundary'.format(truncated.index))

	def _render_title(self, payload):
		self.output_line('    ' + payload.title + ':')

	def _render_no_data(self, payload):
		self.output_line('    NULL pointer or zero size - no data')

	def _render_nop(self, payload):
		self.output_line('    No Operation Token (NOP)')

	def _render_boundary_violation(self, payload):
		self._render_title(payload)
		self.output_line('      Error: Data extends beyond ROM boundary')

	def _render_bios_data(self, payload):
		self._render_title(payload)
		for label, value, format in payload.fields:
			self.output_line('      ' + label + ': ' + format.format(value))

	def _render_string_table(self, payload):
		self._render_title(payload)
		for label, string in payload.strings:
			self.output_line('      {0}: "{1}"'.format(label, string))

	def _render_raw_bytes(self, payload):
		self._render_title(payload)
		self.output_line('      Raw Data (hex):')
		for line in util.hex_lines(payload.data, '        '):
			self.output_line(line)
