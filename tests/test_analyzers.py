"""
End-to-end tests for the BIT analyzer and text report.
"""
import io

import pytest

from nvbit import analyzers, formatters
from nvbit.romdata import RomImage
from romfactory import bios_data_v1, bit_header, bit_token, pci_rom_header, place


def _scenario_rom():
    """2048-byte image: expansion ROM at 512, BIT header at 600 with a
    BIOSDATA v1 token and a NOP token."""
    data = bytearray(2048)
    place(data, 512, pci_rom_header(28))
    place(data, 600, bit_header(2, bcd_version=0x0100))
    place(data, 612, bit_token(0x42, 1, 18, 0x300))
    place(data, 618, bit_token(0x4E, 0, 1, 0x400))
    place(data, 0x300, bios_data_v1())
    return RomImage(data, 'scenario.rom')


def _analyze(rom, **kwargs):
    out = io.StringIO()
    analyzer = analyzers.BITAnalyzer()
    analyzer.debug_print = lambda *args: None
    count = analyzer.analyze(rom, formatters.TextFormatter([out]), **kwargs)
    return count, out.getvalue()


def _token_blocks(report):
    body = report.split('BIT Tokens:\n', 1)[1]
    return [block for block in body.split('\n\n') if block.strip()]


def test_scenario():
    count, report = _analyze(_scenario_rom())
    assert count == 2
    assert 'PCI Expansion ROM found at offset: 0x200\n' in report
    assert 'BIT Header found at offset: 0x258\n' in report

    blocks = _token_blocks(report)
    assert len(blocks) == 2
    assert blocks[0].startswith('  Token 0: BIT_TOKEN_BIOSDATA (0x42)\n')
    assert '    BIOS Data (Version 1):\n' in blocks[0]
    assert '      BIOS Version: 70123400\n' in blocks[0]
    assert '      BIOS Checksum: 0xab\n' in blocks[0]
    assert '      Frame Count: 60\n' in blocks[0]
    assert blocks[0].endswith('      BIOSMOD Date: 123456')
    assert blocks[1] == '\n'.join([
        '  Token 1: BIT_TOKEN_NOP (0x4e)',
        '    Data Version: 0',
        '    Data Size: 1 bytes',
        '    Data Pointer: 0x400',
        '    No Operation Token (NOP)',
    ])


def test_report_header():
    _, report = _analyze(_scenario_rom())
    assert report.startswith('\n'.join([
        'NVIDIA ROM File Analysis',
        '========================',
        '',
        'File: scenario.rom',
        'Size: 2048 bytes',
        '',
        'PCI Expansion ROM found at offset: 0x200',
        'PCI Data Structure at offset 0x21c: vendor 0x10de device 0x2684 revision 0 class 0x030000',
        '',
        'BIT Header found at offset: 0x258',
        '',
        'BIT Header:',
        '  ID: 0xb8ff',
        '  Signature: "BIT"',
        '  BCD Version: 0x100',
        '  Header Size: 12 bytes',
        '  Token Size: 6 bytes',
        '  Token Entries: 2',
    ]))


def test_report_is_deterministic():
    assert _analyze(_scenario_rom()) == _analyze(_scenario_rom())


def test_no_data_marker_for_bios_data():
    data = bytearray(256)
    place(data, 0, bit_header(1))
    place(data, 12, bit_token(0x42, 1, 0, 0))
    _, report = _analyze(RomImage(data))
    block, = _token_blocks(report)
    assert '    NULL pointer or zero size - no data' in block
    assert 'BIOS Data' not in block


def test_truncated_directory():
    data = bytearray(12 + 6 * 2 + 3)
    place(data, 0, bit_header(4))
    place(data, 12, bit_token(0x4E, 0, 1, 1))
    place(data, 18, bit_token(0x99, 1, 0, 0))
    count, report = _analyze(RomImage(data))
    assert count == 2
    assert report.endswith('Error: Token 2 extends beyond ROM boundary\n')
    assert 'Token 3' not in report


def test_raw_and_boundary_payloads():
    data = bytearray(256)
    place(data, 0, bit_header(2))
    place(data, 12, bit_token(0x70, 1, 20, 0x40))
    place(data, 18, bit_token(0x4D, 1, 0x20, 0xF0))
    place(data, 0x40, bytes(range(20)))
    _, report = _analyze(RomImage(data))
    raw, violation = _token_blocks(report)
    assert raw.endswith('\n'.join([
        '    BIT_TOKEN_FALCON_DATA Data:',
        '      Raw Data (hex):',
        '        00 01 02 03 04 05 06 07 08 09 0a 0b 0c 0d 0e 0f ',
        '        10 11 12 13 ',
    ]))
    assert violation.endswith('\n'.join([
        '    BIT_TOKEN_MEMORY_PTRS Data:',
        '      Error: Data extends beyond ROM boundary',
    ]))


def test_unrecognized_version_renders_title_only():
    data = bytearray(256)
    place(data, 0, bit_header(1))
    place(data, 12, bit_token(0x53, 9, 64, 0x40))
    _, report = _analyze(RomImage(data))
    block, = _token_blocks(report)
    assert block.endswith('    Data Pointer: 0x40\n    String Pointers (Version 9):')


def test_unknown_token_name():
    data = bytearray(256)
    place(data, 0, bit_header(1))
    place(data, 12, bit_token(0x99, 1, 0, 0))
    _, report = _analyze(RomImage(data))
    assert '  Token 0: UNKNOWN_TOKEN (0x99)\n' in report


def test_no_pci_rom_searches_from_zero():
    data = bytearray(256)
    place(data, 7, bit_header(0))
    count, report = _analyze(RomImage(data))
    assert count == 0
    assert 'PCI Expansion ROM found at offset: 0x0\n\n' in report
    assert 'BIT Header found at offset: 0x7\n' in report


def test_header_before_rom_base_not_searched():
    data = bytearray(2048)
    place(data, 100, bit_header(0))
    place(data, 512, pci_rom_header(28))
    with pytest.raises(analyzers.BITHeaderNotFoundError):
        _analyze(RomImage(data))
    count, report = _analyze(RomImage(data), start=0)
    assert 'BIT Header found at offset: 0x64\n' in report


def test_header_not_found():
    out = io.StringIO()
    with pytest.raises(analyzers.BITHeaderNotFoundError):
        analyzers.BITAnalyzer().analyze(RomImage(bytes(1024)), formatters.TextFormatter([out]))
    assert out.getvalue().endswith('PCI Expansion ROM found at offset: 0x0\n\nError: BIT Header not found\n')


def test_empty_rom():
    out = io.StringIO()
    with pytest.raises(analyzers.NoDataError):
        analyzers.BITAnalyzer().analyze(RomImage(b''), formatters.TextFormatter([out]))
    assert out.getvalue() == ''


def test_multiple_outputs():
    first, second = io.StringIO(), io.StringIO()
    analyzer = analyzers.BITAnalyzer()
    analyzer.debug_print = lambda *args: None
    analyzer.analyze(_scenario_rom(), formatters.TextFormatter([first, second]))
    assert first.getvalue() == second.getvalue() != ''


def test_formatter_options_not_shared():
    first = formatters.TextFormatter([io.StringIO()])
    second = formatters.TextFormatter([io.StringIO()])
    assert first.options == {} and second.options == {}
    first.options['debug'] = True
    assert second.options == {}
    assert formatters.TextFormatter([io.StringIO()], {'debug': True}).options == {'debug': True}


def test_silenced_debug_output(capsys):
    data = bytearray(256)
    place(data, 20, bit_header(1, valid=False))
    place(data, 100, bit_header(1))
    place(data, 112, bit_token(0x42, 7, 4, 0x40))
    analyzer = analyzers.BITAnalyzer()
    assert not hasattr(analyzer, 'debug')
    dummy_func = lambda *args: None
    analyzer.debug_print = dummy_func
    for decoder in analyzer.decoders:
        assert not hasattr(decoder, 'debug')
        decoder.debug_print = dummy_func
    analyzer.analyze(RomImage(data), formatters.TextFormatter([io.StringIO()]))
    assert capsys.readouterr().err == ''
