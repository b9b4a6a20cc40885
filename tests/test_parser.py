import logging

import pytest

from air_jax.data_model import (
    Action, Blend, ClsnBox, Element, Flip, Interpolate, InterpolationKind,
)
from air_jax.errors import (
    AirError, AirParseErrors, AirSyntaxError, InvalidModifierValue,
    InvalidNumericLiteral,
)
from air_jax.parser import ParserSettings, parse_air, parse_air_text, recognize
from conftest import MINIMAL_AIR, SAMPLE_AIR


def test_minimal_document():
    result = parse_air_text(MINIMAL_AIR)
    assert result == {
        0: Action(
            number=0,
            elements=[Element(group=0, image=0, x=5, y=-3, time=3)],
            loop_start=0,
            interpolates=None,
        )
    }


def test_recognizer_node_vocabulary():
    tree = recognize(MINIMAL_AIR)
    assert tree.data == 'file'
    action = tree.children[0]
    assert action.data == 'action'
    assert [c.data for c in action.children] == ['action_def', 'action_element']
    base = action.children[1].children[0]
    assert base.data == 'base_element'
    assert [str(t) for t in base.children] == ['0', '0', '5', '-3', '3']


def test_parse_sample_file():
    actions = parse_air(SAMPLE_AIR)
    assert sorted(actions) == [0, 200, 210]

    idle = actions[0]
    assert len(idle.elements) == 11
    assert idle.loop_start == 0
    assert idle.interpolates is None
    assert all(e.clsn2 == [ClsnBox(-13, 0, 16, -79), ClsnBox(5, -79, -5, -93)]
               for e in idle.elements)
    assert all(e.clsn1 is None for e in idle.elements)
    assert idle.total_time == 151


def test_parse_sample_one_shot_clsn():
    punch = parse_air(SAMPLE_AIR)[200]
    hurt = [ClsnBox(-13, 0, 16, -76)]
    assert [e.clsn1 for e in punch.elements] == [None, [ClsnBox(17, -80, 65, -68)], None]
    assert [e.clsn2 for e in punch.elements] == [hurt, hurt, hurt]
    assert punch.elements[1].flip == Flip.HORIZONTAL


def test_parse_sample_modifiers_and_markers():
    fx = parse_air(SAMPLE_AIR)[210]
    assert fx.loop_start == 1
    assert fx.interpolates == [Interpolate(InterpolationKind.OFFSET, 2)]

    e1, e2, e3 = fx.elements[1:]
    assert e1.flip is None
    assert e1.blend == Blend.add(256, 128)
    assert (e1.x, e1.y) == (5, -2)

    assert e2.flip == Flip.BOTH
    assert e2.blend == Blend.add(128, 64)
    assert e2.x_scale == 1.5
    assert e2.y_scale == 0.5
    assert e2.rotation == 45

    assert e3.holds
    assert e3.flip == Flip.VERTICAL
    assert e3.blend == Blend.sub()
    assert fx.total_time is None


def test_parse_is_deterministic():
    with open(SAMPLE_AIR) as f:
        text = f.read()
    assert parse_air_text(text) == parse_air_text(text)


def test_loop_start_within_bounds():
    for action in parse_air(SAMPLE_AIR).values():
        assert 0 <= action.loop_start <= len(action.elements)


def test_keywords_case_insensitive_and_comments():
    text = (
        "; leading comment\n"
        "\n"
        "[begin ACTION 12] ; trailing comment\n"
        "clsn1: 1\n"
        "  CLSN1[0] = 1, 2, 3, 4   ; box\n"
        "12,0, 0,0, 2\n"
        "LOOPSTART\n"
        "interpolate scale\n"
        "12,1, 0,0, 2, h, as256d256"
    )
    action = parse_air_text(text)[12]
    assert action.elements[0].clsn1 == [ClsnBox(1, 2, 3, 4)]
    assert action.loop_start == 1
    assert action.interpolates == [Interpolate(InterpolationKind.SCALE, 1)]
    assert action.elements[1].flip == Flip.HORIZONTAL
    assert action.elements[1].blend == Blend.add(256, 256)


def test_empty_modifier_slots():
    text = "[Begin Action 1]\n1,0, 0,0, 2, , , 2, , 30\n"
    e = parse_air_text(text)[1].elements[0]
    assert e.flip is None
    assert e.blend is None
    assert e.x_scale == 2.0
    assert e.y_scale is None
    assert e.rotation == 30


def test_empty_document():
    assert parse_air_text("") == {}
    assert parse_air_text("; nothing here\n") == {}


def test_action_without_elements():
    action = parse_air_text("[Begin Action 4]\nLoopstart\n")[4]
    assert action.elements == []
    assert action.loop_start == 0


def test_duplicate_number_keeps_second():
    text = (
        "[Begin Action 3]\n"
        "3,0, 0,0, 1\n"
        "[Begin Action 3]\n"
        "3,9, 1,1, 8\n"
        "3,10, 1,1, 8\n"
    )
    result = parse_air_text(text)
    assert list(result) == [3]
    assert [e.image for e in result[3].elements] == [9, 10]


def test_syntax_error_position():
    text = "[Begin Action 0]\n0,0, 0,0\n"
    with pytest.raises(AirSyntaxError) as info:
        parse_air_text(text)
    assert info.value.line == 2
    assert info.value.position == (info.value.line, info.value.column)
    assert isinstance(info.value, AirError)


def test_statement_outside_action_is_syntax_error():
    with pytest.raises(AirSyntaxError):
        parse_air_text("0,0, 0,0, 3\n")


def test_unrecognized_blend_rejected():
    text = "[Begin Action 0]\n0,0, 0,0, 3, , AX\n"
    with pytest.raises(InvalidModifierValue) as info:
        parse_air_text(text)
    assert info.value.modifier == 'blend'
    assert info.value.text == 'AX'
    assert info.value.line == 2


@pytest.mark.parametrize('spelling', ['AS128', 'AS128Dx', 'as64d'])
def test_partial_additive_blend_rejected(spelling):
    text = f"[Begin Action 0]\n0,0, 0,0, 3, , {spelling}\n"
    with pytest.raises(InvalidModifierValue) as info:
        parse_air_text(text)
    assert info.value.modifier == 'blend'
    assert info.value.text == spelling
    assert info.value.line == 2


def test_unrecognized_flip_rejected():
    with pytest.raises(InvalidModifierValue) as info:
        parse_air_text("[Begin Action 0]\n0,0, 0,0, 3, X\n")
    assert info.value.modifier == 'flip'


def test_unrecognized_clsn_kind_rejected():
    text = "[Begin Action 0]\nClsn3: 1\n Clsn3[0] = 0,0,1,1\n0,0, 0,0, 3\n"
    with pytest.raises(InvalidModifierValue) as info:
        parse_air_text(text)
    assert info.value.modifier == 'clsn'


def test_decimal_in_integer_field_rejected():
    with pytest.raises(InvalidNumericLiteral) as info:
        parse_air_text("[Begin Action 0]\n0,0, 0,0, 2.5\n")
    assert info.value.field == 'time'
    assert info.value.text == '2.5'


def test_clsn_count_mismatch_warns(caplog):
    text = "[Begin Action 0]\nClsn2: 2\n Clsn2[0] = 0,0,1,1\n0,0, 0,0, 3\n"
    with caplog.at_level(logging.WARNING, logger='air_jax'):
        action = parse_air_text(text)[0]
    assert action.elements[0].clsn2 == [ClsnBox(0, 0, 1, 1)]
    assert 'declares 2 box(es) but lists 1' in caplog.text


def test_injected_logger():
    log = logging.getLogger('air_jax.test_injected')
    records = []

    class _Collect(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = _Collect(level=logging.DEBUG)
    log.addHandler(handler)
    log.setLevel(logging.DEBUG)
    try:
        text = "[Begin Action 1]\n1,0,0,0,1\n[Begin Action 1]\n1,1,0,0,1\n"
        parse_air_text(text, ParserSettings(logger=log))
    finally:
        log.removeHandler(handler)
    assert any('declared again' in r.getMessage() for r in records)


def test_collect_mode_reports_every_failed_block():
    text = (
        "[Begin Action 1]\n1,0, 0,0, 1, Q\n"
        "[Begin Action 2]\n2,0, 0,0, 1\n"
        "[Begin Action 3]\n3,0, 0,0, 1, , ZZ\n"
    )
    with pytest.raises(InvalidModifierValue):
        parse_air_text(text)

    with pytest.raises(AirParseErrors) as info:
        parse_air_text(text, ParserSettings(errors='collect'))
    assert len(info.value.errors) == 2
    assert [e.modifier for e in info.value.errors] == ['flip', 'blend']
    assert list(info.value.actions) == [2]


def test_settings_validation_and_override():
    with pytest.raises(ValueError):
        ParserSettings(errors='lenient')
    collect = ParserSettings()(errors='collect')
    assert collect.errors == 'collect'
    assert collect.encoding == 'utf-8'


def test_parse_air_encoding(tmp_path):
    path = tmp_path / 'latin.air'
    path.write_bytes("; caf\xe9\n[Begin Action 8]\n8,0, 0,0, 1\n".encode('latin-1'))
    actions = parse_air(str(path), ParserSettings(encoding='latin-1'))
    assert list(actions) == [8]


def test_box_tag_from_other_side_warns(caplog):
    text = "[Begin Action 0]\nClsn2: 1\n Clsn1[0] = 1,2,3,4\n0,0, 0,0, 3\n"
    with caplog.at_level(logging.WARNING, logger='air_jax'):
        element = parse_air_text(text)[0].elements[0]
    assert element.clsn2 == [ClsnBox(1, 2, 3, 4)]
    assert element.clsn1 is None
    assert 'sits under Clsn2' in caplog.text


def test_matching_box_tags_do_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger='air_jax'):
        parse_air(SAMPLE_AIR)
    assert 'sits under' not in caplog.text
