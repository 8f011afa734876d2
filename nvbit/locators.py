#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                PCI expansion ROM and BIT header locators.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
import collections
from . import tokens

# Constants.
ROM_SIGNATURE = b'\x55\xaa'
ROM_ALIGNMENT = 512
PCI_DATA_POINTER_OFFSET = 24
PCI_DATA_SIGNATURE = b'PCIR'
PCI_DATA_FORMAT = '<4sHHHHBBBB'

PCIData = collections.namedtuple('PCIData', 'offset vendor_id device_id revision class_code')


def find_pci_rom(rom):
	"""Returns the offset of the first PCI expansion ROM image, which
	   starts on a 512-byte boundary with 55 AA and points to a valid
	   PCIR structure. Returns 0 if none was found."""

	offset = 0
	while offset + 1 < len(rom):
		# Check the boot signature.
		if rom.read(offset, 2) == ROM_SIGNATURE and rom.in_bounds(offset + PCI_DATA_POINTER_OFFSET, 2):
			# Check the PCI data structure signature.
			pci_data_ptr = offset + rom.u16(offset + PCI_DATA_POINTER_OFFSET)
			if rom.in_bounds(pci_data_ptr, 4) and rom.read(pci_data_ptr, 4) == PCI_DATA_SIGNATURE:
				return offset

		offset += ROM_ALIGNMENT

	return 0

def read_pci_data(rom, rom_offset):
	"""Returns a PCIData for the expansion ROM image at rom_offset,
	   or None if there's no complete PCIR structure there."""

	# Follow the PCI data structure pointer.
	if not rom.in_bounds(rom_offset + PCI_DATA_POINTER_OFFSET, 2):
		return None
	pci_data_ptr = rom_offset + rom.u16(rom_offset + PCI_DATA_POINTER_OFFSET)
	if not rom.in_bounds(pci_data_ptr, 16):
		return None

	# Read PCI data structure.
	magic, vendor_id, device_id, _, _, revision, progif, subclass, class_code = rom.unpack(PCI_DATA_FORMAT, pci_data_ptr)
	if magic != PCI_DATA_SIGNATURE:
		return None
	return PCIData(pci_data_ptr, vendor_id, device_id, revision, (class_code << 16) | (subclass << 8) | progif)

def find_bit_header(rom, start=0, debug_print=None):
	"""Returns the offset of the first BIT header at or after start which
	   passes checksum validation, or None if none was found. The scan is
	   unaligned, as the header can be anywhere in the image."""

	header_id = tokens.BIT_HEADER_ID.to_bytes(2, 'little') + tokens.BIT_SIGNATURE
	for offset in range(max(start, 0), len(rom) - tokens.BIT_HEADER_SIZE + 1):
		if rom.read(offset, len(header_id)) != header_id:
			continue

		# Validate checksum over the header's own declared size.
		header_size = rom.u8(offset + 8)
		if not rom.in_bounds(offset, header_size):
			if debug_print:
				debug_print('BIT signature at', hex(offset), 'has header size', header_size, 'past end of image')
			continue
		checksum = tokens.header_checksum(rom, offset, header_size)
		if checksum == 0:
			return offset
		elif debug_print:
			debug_print('BIT signature at', hex(offset), 'failed checksum, sum', hex(checksum))

	return None
