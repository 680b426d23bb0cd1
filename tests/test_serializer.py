import pytest

from seqscript import parse, serialize
from seqscript.syntax import Comment, Message, Participant, Style


def canonical(text):
    return serialize(parse(text))


def test_empty_document():
    assert serialize([]) == ""


def test_no_trailing_newline():
    assert canonical("A->B:x\n") == "A->B:x\n"
    assert not canonical("A->B:x").endswith("\n")


@pytest.mark.parametrize(
    "line",
    [
        "A->B:hello   world",
        "A->B:",
        "A->(2)B:later",
        "A->*B:spawn",
        "[->A:incoming",
        "A->]:outgoing",
        "A-[#red;3]->B:msg",
        "A<-[##warn]--B:x",
        "A-[;2]-->>B:thin",
        "participant Alice",
        'participant "Web Server" as WS #lightblue #green;3;dashed',
        "participant P #pink ;3",
        "participant Q ;2;dotted",
        "actor U",
        "fontawesome6solid f48e Doctor",
        "image data:image/png;base64,AAAA Logo",
        "note over A,B:hello",
        "note left of A #yellow:hi",
        "rbox right of B ##warn:careful",
        "==Phase 1==",
        "==Phase 2== #pink #black;2",
        "// comment",
        "# hash comment",
    ],
)
def test_lines_are_canonical(line):
    assert canonical(line) == line


@pytest.mark.parametrize(
    "line",
    [
        "title My Diagram",
        "entryspacing 1.5",
        "autonumber 5",
        "autonumber off",
        "space",
        "space 3",
        "space -2",
        "participantspacing 200",
        "participantspacing equal",
        "lifelinestyle A #purple;4;dashed",
        "lifelinestyle #red",
        "linear",
        "linear off",
        "parallel",
        "parallel off",
        "bottomparticipants",
        "fontfamily Courier",
        'fontfamily "Times New Roman"',
        "destroy A",
        "destroyafter A",
        "destroysilent A",
        "activate A",
        "activate A #lightblue",
        "deactivate A",
        "deactivateafter A",
        "autoactivation on",
        "autoactivation off",
        "activecolor #yellow",
        "activecolor Server #lightgreen",
        "frame#red #lightblue #black;2;dashed My Title",
        "frame Overview",
        "frame",
        "style warn #red #black;2,**",
        "messagestyle #blue;2,**//",
        "notestyle #yellow",
        "participantstyle ;3",
        "aboxleftstyle #pink",
    ],
)
def test_directives_are_canonical(line):
    assert canonical(line) == line


def test_default_directive_values_use_short_form():
    assert canonical("space 1") == "space"
    assert canonical("autonumber") == "autonumber 1"


def test_quoted_name_collapses_when_alias_matches():
    assert canonical('participant "A" as A') == "participant A"


def test_multiline_display_name_is_escaped():
    assert canonical('participant "One\\nTwo" as P') == 'participant "One\\nTwo" as P'


def test_create_marker_is_always_explicit():
    assert canonical("A->B:<<create>> it") == "A->*B:<<create>> it"


def test_bare_arrow_without_style():
    message = Message(id="m", source_line_start=1, source_line_end=1, from_="A", to="B", label="x")
    assert serialize([message]) == "A->B:x"


def test_message_style_without_fill():
    message = Message(
        id="m",
        source_line_start=1,
        source_line_end=1,
        from_="A",
        to="B",
        arrow_type="-->",
        label="x",
        style=Style(border_width=4),
    )
    assert serialize([message]) == "A-[;4]-->B:x"


def test_fragment_indentation_is_normalized():
    assert canonical("alt c\n        A->B:x\n   end") == "alt c\n  A->B:x\nend"


def test_nested_fragments_indent_two_spaces_per_level():
    text = "alt a\nloop b\nA->B:x\nend\nelse c\nB->A:y\nend"
    assert canonical(text) == "alt a\n  loop b\n    A->B:x\n  end\nelse c\n  B->A:y\nend"


def test_blank_lines_inside_fragments_have_no_indent():
    assert canonical("alt c\n\n    A->B:x\nend") == "alt c\n\n  A->B:x\nend"


def test_fragment_styles_keep_fixed_order():
    text = "alt#red #lightblue #black;2;dashed ok\n  A->B:x\nelse #yellow other\n  B->A:y\nend"
    assert canonical(text) == text


def test_participant_groups_emit_their_participants():
    text = "participantgroup #lightgrey Backend\n  participant API\n  participantgroup Data\n    participant DB\n  end\nend"
    assert canonical(text) == text


def test_grouped_participants_are_not_repeated_at_top_level():
    output = canonical("participantgroup G\nparticipant A\nend\nA->B:x")
    assert output.count("participant A") == 1


def test_alias_redeclared_inside_group_keeps_both_declarations():
    text = "participant A #red\nparticipantgroup G\n  participant A #blue\nend"
    output = canonical(text)
    assert output == text
    fills = [node.style.fill for node in parse(output).filter(Participant)]
    assert fills == ["#red", "#blue"]


def test_error_nodes_become_comments():
    output = canonical("what is this")
    assert output == "// ERROR: what is this"
    reparsed = parse(output)
    assert isinstance(reparsed[0], Comment)
    assert not reparsed.errors()


def test_unclosed_fragment_error_is_kept_as_comment():
    output = canonical("alt cond\nA->B:x")
    assert output == "alt cond\n  A->B:x\nend\n// ERROR: alt cond"


def test_serialize_accepts_node_lists():
    nodes = list(parse("participant A\nA->A:self"))
    assert serialize(nodes) == "participant A\nA->A:self"
    assert isinstance(nodes[0], Participant)


def test_markup_only_style_definition_drops_the_comma():
    assert canonical("style quiet ,//") == "style quiet //"
    assert canonical("style quiet //") == "style quiet //"
