#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                BIT header and token directory structures.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
import collections, struct, types

# Constants.
BIT_HEADER_ID = 0xb8ff
BIT_SIGNATURE = b'BIT\x00'
BIT_HEADER_FORMAT = '<H4sHBBBB'
BIT_HEADER_SIZE = struct.calcsize(BIT_HEADER_FORMAT) # 12
BIT_TOKEN_FORMAT = '<BBHH'
BIT_TOKEN_RECORD_SIZE = struct.calcsize(BIT_TOKEN_FORMAT) # 6

TOKEN_BIOSDATA = 0x42
TOKEN_NOP = 0x4e
TOKEN_STRING_PTRS = 0x53

UNKNOWN_TOKEN_NAME = 'UNKNOWN_TOKEN'

TOKEN_NAMES = types.MappingProxyType({
	0x32: 'BIT_TOKEN_I2C_PTRS',
	0x41: 'BIT_TOKEN_DAC_PTRS',
	0x42: 'BIT_TOKEN_BIOSDATA',
	0x43: 'BIT_TOKEN_CLOCK_PTRS',
	0x44: 'BIT_TOKEN_DFP_PTRS',
	0x49: 'BIT_TOKEN_NVINIT_PTRS',
	0x4c: 'BIT_TOKEN_LVDS_PTRS',
	0x4d: 'BIT_TOKEN_MEMORY_PTRS',
	0x4e: 'BIT_TOKEN_NOP',
	0x50: 'BIT_TOKEN_PERF_PTRS',
	0x52: 'BIT_TOKEN_BRIDGE_FW_DATA',
	0x53: 'BIT_TOKEN_STRING_PTRS',
	0x54: 'BIT_TOKEN_TMDS_PTRS',
	0x55: 'BIT_TOKEN_DISPLAY_PTRS',
	0x56: 'BIT_TOKEN_VIRTUAL_PTRS',
	0x63: 'BIT_TOKEN_32BIT_PTRS',
	0x64: 'BIT_TOKEN_DP_PTRS',
	0x70: 'BIT_TOKEN_FALCON_DATA',
	0x75: 'BIT_TOKEN_UEFI_DATA',
	0x78: 'BIT_TOKEN_MXM_DATA',
})

BITHeader = collections.namedtuple('BITHeader', 'offset id signature bcd_version header_size token_size token_entries checksum')
BITToken = collections.namedtuple('BITToken', 'index offset id data_version data_size data_pointer')
TokenTruncated = collections.namedtuple('TokenTruncated', 'index offset')


def token_name(token_id):
	"""Returns the symbolic name for a token ID, or UNKNOWN_TOKEN."""
	return TOKEN_NAMES.get(token_id, UNKNOWN_TOKEN_NAME)

def header_checksum(rom, offset, header_size):
	"""Returns the 8-bit sum of header_size bytes at offset."""
	return sum(rom.read(offset, header_size)) & 0xff

def read_bit_header(rom, offset):
	"""Read the BIT header at offset. OutOfBoundsError is propagated."""
	return BITHeader(offset, *rom.unpack(BIT_HEADER_FORMAT, offset))

def walk_tokens(rom, header):
	"""Generate a BITToken for each entry in the header's token directory.
	   If a record would cross the end of the image, a TokenTruncated is
	   generated for it instead and the walk stops."""

	token_offset = header.offset + header.header_size
	for index in range(header.token_entries):
		# Stop if this record doesn't fit.
		if not rom.in_bounds(token_offset, BIT_TOKEN_RECORD_SIZE):
			yield TokenTruncated(index, token_offset)
			return

		yield BITToken(index, token_offset, *rom.unpack(BIT_TOKEN_FORMAT, token_offset))

		# Records are spaced by the header's token size, which may
		# differ from the size of the fields we know about.
		token_offset += header.token_size
