import pytest

from seqscript import StyleSheet, parse, resolve_color, resolve_style
from seqscript.syntax import Directive, DirectiveType, Message, Note, Participant, Style
from seqscript.syntax.styles import (
    format_definition_style,
    format_message_style,
    format_shape_style,
    parse_definition_style,
    parse_message_style,
    parse_shape_style,
    split_style_prefix,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", Style()),
        ("#red", Style(fill="#red")),
        ("#red;2", Style(fill="#red", border_width=2)),
        ("#red #blue", Style(fill="#red", border="#blue")),
        ("#red #blue;3;dotted", Style(fill="#red", border="#blue", border_width=3, border_style="dotted")),
        (";4", Style(border_width=4)),
        (";;dashed", Style(border_style="dashed")),
    ],
)
def test_parse_shape_style(text, expected):
    assert parse_shape_style(text) == expected


def test_absent_and_explicit_values_stay_distinct():
    style = parse_shape_style("#red ;0")
    assert style.border_width == 0
    assert style.border is None
    assert "border" not in style.specified()


def test_format_shape_style_order():
    style = Style(border_style="dashed", border_width=2, border="#black", fill="#white")
    assert format_shape_style(style) == "#white #black;2;dashed"
    assert format_shape_style(Style(fill="#pink", border_width=3)) == "#pink ;3"
    assert format_shape_style(None) == ""


def test_definition_style_attaches_width_to_fill():
    style = parse_definition_style("#blue;2,**//")
    assert style == Style(fill="#blue", border_width=2, text_markup="**//")
    assert format_definition_style(style) == "#blue;2,**//"


def test_definition_style_markup_only():
    assert parse_definition_style("**") == Style(text_markup="**")
    assert parse_definition_style(";3") == Style(border_width=3)


def test_message_style_spec():
    assert parse_message_style("#red;3") == Style(fill="#red", border_width=3)
    assert parse_message_style("##loud") == Style(style_name="loud")
    assert parse_message_style("") is None
    assert format_message_style(Style(fill="#red", border_width=3)) == "#red;3"
    assert format_message_style(None) == ""


def test_split_style_prefix_takes_at_most_two_tokens():
    assert split_style_prefix("#a #b #c rest") == ("#a #b", "#c rest")
    assert split_style_prefix("plain words") == ("", "plain words")
    assert split_style_prefix("##named x") == ("", "##named x")


@pytest.mark.parametrize(
    "color, expected",
    [
        ("#FF0000", "#FF0000"),
        ("#abc", "#abc"),
        ("#LightBlue", "lightblue"),
        ("red", "red"),
        (None, None),
        ("", None),
    ],
)
def test_resolve_color(color, expected):
    assert resolve_color(color) == expected


CASCADE = """style warn #red
notestyle #yellow #black;2
note over A ##warn:named
note over A:typed
note over A ##missing:fallback"""


def test_named_style_wins_over_type_style():
    document = parse(CASCADE)
    named = document.filter(Note)[0]
    style = resolve_style(named, document)
    assert style.fill == "#red"
    assert style.border == "#black"
    assert style.border_width == 2


def test_type_style_applies_without_reference():
    document = parse(CASCADE)
    assert resolve_style(document.filter(Note)[1], document).fill == "#yellow"


def test_missing_named_style_falls_back_silently():
    document = parse(CASCADE)
    style = resolve_style(document.filter(Note)[2], document)
    assert style.fill == "#yellow"


def test_hard_defaults_fill_unspecified_fields():
    document = parse("participant A")
    participant = document.filter(Participant)[0]
    style = resolve_style(participant, document)
    assert style.fill == "#white"
    assert style.border_style == "solid"


def test_inline_message_style_wins():
    document = parse("messagestyle #blue;2\nA-[#red]->B:x")
    message = document.filter(Message)[0]
    style = resolve_style(message, document)
    assert style.fill == "#red"
    assert style.border_width == 2


def test_abox_side_specific_style():
    document = parse("aboxstyle #gray\naboxrightstyle #cyan\nabox right of A:r\nabox left of A:l")
    sheet = StyleSheet.from_document(document)
    right, left = document.filter(Note)
    assert sheet.resolve(right).fill == "#cyan"
    assert sheet.resolve(left).fill == "#gray"


def test_stylesheet_collects_definitions():
    document = parse("style one #red\nstyle one #blue\ndividerstyle #eee")
    sheet = StyleSheet.from_document(document)
    assert sheet.named == {"one": Style(fill="#blue")}
    assert sheet.by_type == {"divider": Style(fill="#eee")}
    kinds = [node.directive_type for node in document.filter(Directive)]
    assert kinds == [DirectiveType.STYLE, DirectiveType.STYLE, DirectiveType.TYPESTYLE]
