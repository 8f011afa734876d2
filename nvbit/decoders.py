#!/usr/bin/python3
#
# 86Box          A hypervisor and IBM PC system emulator that specializes in
#                running old operating systems and software designed for IBM
#                PC systems and compatibles from 1981 through fairly recent
#                system designs based on the PCI bus.
#
#                This file is part of the 86Box BIOS Tools distribution.
#
#                BIT token payload decoder classes.
#
#
#
# Authors:       RichardG, <richardg867@gmail.com>
#
#                Copyright 2021 RichardG.
#
import collections, struct, sys
from . import romdata, tokens


# Payload variants.

class Payload:
	"""Base class for a decoded token payload."""

	def __init__(self, token, name, title=None):
		self.token = token
		self.name = name
		self.title = title

	def __repr__(self):
		return '{cls}({id:#04x}, {title!r})'.format(cls=self.__class__.__name__, id=self.token.id, title=self.title)


class NoData(Payload):
	"""Token with a null data pointer or zero data size."""
	pass


class Nop(Payload):
	pass


class BoundaryViolation(Payload):
	"""Token whose data would extend past the end of the image."""
	pass


class UnrecognizedLayout(Payload):
	"""Known token type with a version/size combination we can't decode.
	   Only the title is rendered."""
	pass


class BIOSData(Payload):
	def __init__(self, token, name, title, fields):
		super().__init__(token, name, title)

		# List of (label, value, format) tuples.
		self.fields = fields


class StringTable(Payload):
	def __init__(self, token, name, title, strings):
		super().__init__(token, name, title)

		# List of (label, string) tuples.
		self.strings = strings


class RawBytes(Payload):
	def __init__(self, token, name, title, data):
		super().__init__(token, name, title)
		self.data = data


# Fixed layouts.

Field = collections.namedtuple('Field', 'label code format mask')

def field(label, code, format='{0}', mask=None):
	return Field(label, code, format, mask)

class Layout:
	"""Packed little-endian structure made out of Fields.
	   Fields with no label are read but not rendered."""

	def __init__(self, *fields, size=None):
		self.fields = fields
		self.format = '<' + ''.join(field.code for field in fields)

		# Declared size, which can be smaller than the bytes read when
		# the last field is a word holding a narrower packed value.
		self.size = size or struct.calcsize(self.format)

	def values(self, raw):
		"""Apply field masks to the unpacked raw values."""
		for field, value in zip(self.fields, raw):
			if field.mask is not None:
				value &= field.mask
			yield field, value


BIOS_DATA_V1 = Layout(
	field('BIOS Version',			'I', '{0:x}'),
	field('BIOS OEM Version',		'B'),
	field('BIOS Checksum',			'B', '0x{0:x}'),
	field('INT15 POST Callbacks',	'H', '0x{0:x}'),
	field('INT15 System Callbacks',	'H', '0x{0:x}'),
	field('BIOS Board ID',			'H', '0x{0:x}'),
	field('Frame Count',			'H'),
	field('BIOSMOD Date',			'I', '{0:x}', 0xffffff), # 24 bits packed into a 32-bit word
	size=17,
)

BIOS_DATA_V2 = Layout(
	field('BIOS Version',				'I', '{0:x}'),
	field('BIOS OEM Version',			'B'),
	field('BIOS Checksum',				'B', '0x{0:x}'),
	field('INT15 POST Callbacks',		'H', '0x{0:x}'),
	field('INT15 System Callbacks',		'H', '0x{0:x}'),
	field('Frame Count',				'H'),
	field(None,							'I'), # reserved
	field('Max Heads at POST',			'B'),
	field('Memory Size Report',			'B'),
	field('H Scale Factor',				'B'),
	field('V Scale Factor',				'B'),
	field('Data Table Pointer',			'H', '0x{0:x}'),
	field('ROMpacks Pointer',			'H', '0x{0:x}'),
	field('Applied ROMpacks Pointer',	'H', '0x{0:x}'),
	field('Applied ROMpack Max',		'B'),
	field('Applied ROMpack Count',		'B'),
	field('Module Map External 0',		'B', '0x{0:x}'),
	field('Compression Info Pointer',	'I', '0x{0:x}'),
)

def string_layout(*labels):
	"""Build a layout of (pointer, maximum length) pairs."""
	fields = []
	for label in labels:
		fields.append(field(label, 'H'))
		fields.append(field(None, 'B'))
	return Layout(*fields)

STRING_PTRS_V1 = string_layout(
	'Sign On Message',
	'OEM String',
	'OEM Vendor Name',
	'OEM Product Name',
	'OEM Product Revision',
)

STRING_PTRS_V2 = string_layout(
	'Sign On Message',
	'Version String',
	'Copyright String',
	'OEM String',
	'OEM Vendor Name',
	'OEM Product Name',
	'OEM Product Revision',
)


# Decoders.

class Decoder:
	"""Base class for token payload decoders."""

	token_ids = ()

	def can_handle(self, token):
		"""Returns True if this decoder handles the given token."""
		return token.id in self.token_ids

	def debug_print(self, *args):
		"""Print a log line if debug output is enabled."""
		print(self.__class__.__name__ + ':', *args, file=sys.stderr)

	def decode(self, rom, token, name):
		"""Decode the given token's payload. This must return a Payload."""
		raise NotImplementedError()


class LayoutDecoder(Decoder):
	"""Decoder for payloads with a fixed layout per data version."""

	title_format = ''
	layouts = {}

	def decode(self, rom, token, name):
		title = self.title_format.format(token.data_version)

		# Newer versions and short payloads are skipped, not rejected.
		layout = self.layouts.get(token.data_version)
		if not layout or token.data_size < layout.size:
			self.debug_print('No layout for version', token.data_version, 'with', token.data_size, 'bytes')
			return UnrecognizedLayout(token, name, title)

		try:
			raw = rom.unpack(layout.format, token.data_pointer)
		except romdata.OutOfBoundsError as e:
			self.debug_print(e)
			return BoundaryViolation(token, name, title)

		return self.build(rom, token, name, title, list(layout.values(raw)))

	def build(self, rom, token, name, title, values):
		"""Build the payload out of a list of (field, value) tuples."""
		raise NotImplementedError()


class BIOSDataDecoder(LayoutDecoder):
	token_ids = (tokens.TOKEN_BIOSDATA,)
	title_format = 'BIOS Data (Version {0})'
	layouts = {
		1: BIOS_DATA_V1,
		2: BIOS_DATA_V2,
	}

	def build(self, rom, token, name, title, values):
		fields = [(field.label, value, field.format) for field, value in values if field.label]
		return BIOSData(token, name, title, fields)


class StringPtrsDecoder(LayoutDecoder):
	token_ids = (tokens.TOKEN_STRING_PTRS,)
	title_format = 'String Pointers (Version {0})'
	layouts = {
		1: STRING_PTRS_V1,
		2: STRING_PTRS_V2,
	}

	def build(self, rom, token, name, title, values):
		# Values come in (pointer, maximum length) pairs.
		strings = []
		for (field, pointer), (_, max_length) in zip(values[::2], values[1::2]):
			strings.append((field.label, rom.read_string(pointer, max_length)))
		return StringTable(token, name, title, strings)


class NopDecoder(Decoder):
	token_ids = (tokens.TOKEN_NOP,)

	def decode(self, rom, token, name):
		return Nop(token, name)


class RawDecoder(Decoder):
	"""Fallback decoder which takes the payload as raw bytes."""

	def can_handle(self, token):
		return True

	def decode(self, rom, token, name):
		title = name + ' Data'
		if not rom.in_bounds(token.data_pointer, token.data_size):
			self.debug_print('Data at', hex(token.data_pointer), 'with', token.data_size, 'bytes is past end of image')
			return BoundaryViolation(token, name, title)
		return RawBytes(token, name, title, rom.read(token.data_pointer, token.data_size))


def default_decoders():
	"""Returns the decoder list, with the fallback decoder last."""
	return [
		BIOSDataDecoder(),
		StringPtrsDecoder(),
		NopDecoder(),
		RawDecoder(),
	]

def decode_token(rom, token, decoders):
	"""Decode a token's payload with the first decoder that can handle it."""

	name = tokens.token_name(token.id)

	# Null pointer or empty data takes precedence over the token type.
	if token.data_pointer == 0 or token.data_size == 0:
		return NoData(token, name)

	for decoder in decoders:
		if decoder.can_handle(token):
			return decoder.decode(rom, token, name)

	raise ValueError('no decoder for token {0:#04x}'.format(token.id))
