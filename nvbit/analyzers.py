#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                NVIDIA BIT analyzer.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
import sys
from . import decoders, locators, tokens


class AnalysisError(Exception):
	"""Base class for conditions which abort an analysis."""
	pass


class NoDataError(AnalysisError):
	def __init__(self):
		super().__init__('No ROM data loaded')


class BITHeaderNotFoundError(AnalysisError):
	def __init__(self):
		super().__init__('BIT Header not found')


class BITAnalyzer:
	"""Locates the BIT structure in a ROM image and feeds its header,
	   tokens and decoded payloads to a formatter, in directory order."""

	def __init__(self, decoder_list=None):
		if decoder_list is None:
			decoder_list = decoders.default_decoders()
		self.decoders = decoder_list

	def debug_print(self, *args):
		"""Print a log line if debug output is enabled."""
		print(self.__class__.__name__ + ':', *args, file=sys.stderr)

	def analyze(self, rom, formatter, start=None):
		"""Analyze the given RomImage, writing the report to formatter.
		   The BIT header search starts at the PCI expansion ROM base,
		   or at start if specified. Raises NoDataError on an empty image
		   and BITHeaderNotFoundError if no valid header was found.
		   Returns the number of tokens output."""

		# Stop if there's nothing to scan.
		if not rom:
			raise NoDataError()

		formatter.begin(rom)

		# Find PCI expansion ROM.
		rom_base = locators.find_pci_rom(rom)
		pci_data = locators.read_pci_data(rom, rom_base)
		if pci_data:
			self.debug_print('PCI data structure:', 'vendor', hex(pci_data.vendor_id), 'device', hex(pci_data.device_id))
		formatter.output_rom_base(rom_base, pci_data)

		# Find BIT header.
		if start is None:
			start = rom_base
		header_offset = locators.find_bit_header(rom, start, self.debug_print)
		if header_offset is None:
			formatter.output_error('BIT Header not found')
			raise BITHeaderNotFoundError()
		header = tokens.read_bit_header(rom, header_offset)
		formatter.output_header(header)

		# Walk the token directory.
		count = 0
		for token in tokens.walk_tokens(rom, header):
			if isinstance(token, tokens.TokenTruncated):
				self.debug_print('Token', token.index, 'at', hex(token.offset), 'is past end of image')
				formatter.output_truncated(token)
				break

			formatter.output_token(token, decoders.decode_token(rom, token, self.decoders))
			count += 1

		formatter.end()

		return count
