#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                Bounds-checked access to ROM image data.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
import struct
from . import util


class OutOfBoundsError(Exception):
	"""Exception raised by RomImage when a read would cross the end
	   (or start before the beginning) of the image."""

	def __init__(self, offset, size, length):
		super().__init__('read of {0} bytes at 0x{1:x} exceeds image size 0x{2:x}'.format(size, offset, length))
		self.offset = offset
		self.size = size
		self.length = length


class RomImage:
	"""Read-only view over a loaded ROM image. Every read goes through
	   check(), so nothing can be read past the end of the data."""

	def __init__(self, data, file_name=''):
		self._data = bytes(data)
		self.file_name = file_name

	def __len__(self):
		return len(self._data)

	def __bool__(self):
		return len(self._data) > 0

	def in_bounds(self, offset, size):
		"""Returns True if size bytes can be read at offset."""
		return offset >= 0 and size >= 0 and offset + size <= len(self._data)

	def check(self, offset, size):
		"""Raise OutOfBoundsError if size bytes can't be read at offset."""
		if not self.in_bounds(offset, size):
			raise OutOfBoundsError(offset, size, len(self._data))

	def read(self, offset, size):
		"""Returns size bytes starting at offset."""
		self.check(offset, size)
		return self._data[offset:offset + size]

	def unpack(self, fmt, offset):
		"""Unpack a struct format string at offset."""
		self.check(offset, struct.calcsize(fmt))
		return struct.unpack_from(fmt, self._data, offset)

	def u8(self, offset):
		self.check(offset, 1)
		return self._data[offset]

	def u16(self, offset):
		return self.unpack('<H', offset)[0]

	def u32(self, offset):
		return self.unpack('<I', offset)[0]

	def read_string(self, offset, max_length=255):
		"""Read a NUL-terminated string of up to max_length bytes at offset,
		   stopping early at the end of the image. Returns "NULL" for a null
		   or out of range pointer, or if the string is empty."""
		if offset == 0 or offset >= len(self._data):
			return 'NULL'

		# Slicing clamps to the end of the image.
		return util.read_string(self._data[offset:offset + max_length], ascii_backspace=False) or 'NULL'


def load_rom(file_path):
	"""Read an entire ROM image from file_path. OSError is propagated."""
	with open(file_path, 'rb') as f:
		return RomImage(f.read(), file_path)
