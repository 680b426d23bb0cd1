from seqscript import calculate_layout, parse
from seqscript.layout import ActivationTracker, LevelPacker, ParallelSection, spans_overlap
from seqscript.layout.activations import DEFAULT_ACTIVATION_COLOR

TWO = "participant A\nparticipant B\n"


def bars(text):
    return calculate_layout(parse(text)).activations


def spans(result_bars):
    return [(bar.participant, bar.start_y, bar.end_y, bar.depth) for bar in result_bars]


def test_explicit_activation():
    (bar,) = bars(TWO + "A->B:call\nactivate B\nB->A:reply\ndeactivate B")
    assert (bar.participant, bar.start_y, bar.end_y) == ("B", 150, 200)
    assert bar.depth == 0
    assert bar.color == DEFAULT_ACTIVATION_COLOR


def test_nested_activations_stack():
    text = TWO + "A->B:1\nactivate B\nB->A:2\nactivate B\nA->B:3\ndeactivate B\nA->B:4\ndeactivate B"
    inner, outer = bars(text)
    assert spans([inner, outer]) == [("B", 200, 250, 1), ("B", 150, 300, 0)]
    assert outer.contains(inner)


def test_nested_bars_are_offset():
    text = TWO + "A->B:1\nactivate B\nactivate B\nA->B:2\ndeactivate B\ndeactivate B"
    inner, outer = bars(text)
    assert outer.x == 240 - 5
    assert inner.x == outer.x + 5


def test_activation_colors():
    text = (
        "activecolor #green\nactivecolor B #lightblue\n"
        + TWO
        + "A->B:x\nactivate B\nactivate A\nactivate B #red\nA->B:y"
    )
    result = calculate_layout(parse(text))
    a_bars = result.activations_for("A")
    b_bars = sorted(result.activations_for("B"), key=lambda bar: bar.depth)
    assert [bar.color for bar in a_bars] == ["#green"]
    assert [bar.color for bar in b_bars] == ["#lightblue", "#red"]


def test_activecolor_applies_even_when_declared_later():
    (bar,) = bars(TWO + "A->B:x\nactivate B\nactivecolor #pink")
    assert bar.color == "#pink"


def test_autoactivation_on():
    text = "autoactivation on\nClient->Server:request\nServer-->Client:response"
    (bar,) = bars(text)
    assert (bar.participant, bar.start_y, bar.end_y) == ("Server", 150, 200)


def test_autoactivation_off():
    assert bars("autoactivation off\nClient->Server:request\nServer-->Client:response") == []
    assert bars("Client->Server:request\nServer-->Client:response") == []


def test_autoactivation_does_not_stack_on_active_receiver():
    text = "autoactivation on\nA->B:1\nC->B:2\nB->A:3"
    result = bars(text)
    assert spans(result) == [("B", 150, 250, 0)]


def test_unmatched_deactivate_is_ignored():
    assert bars(TWO + "deactivate A\nA->B:x") == []


def test_open_bars_close_at_the_end():
    (bar,) = bars(TWO + "A->B:x\nactivate B")
    assert (bar.start_y, bar.end_y) == (150, 200)


def test_deactivateafter_closes_one_step_later():
    result = calculate_layout(parse(TWO + "A->B:x\nactivate B\ndeactivateafter B"))
    (bar,) = result.activations
    assert (bar.start_y, bar.end_y) == (150, 200)
    assert result.total_height == 250 + 50


def test_tracker_color_precedence():
    tracker = ActivationTracker(active_color="#global", participant_colors={"B": "#mine"})
    tracker.activate("A", 0)
    tracker.activate("B", 0)
    tracker.activate("B", 10, color="#explicit")
    tracker.close_all(20)
    assert [(bar.participant, bar.color) for bar in tracker.bars] == [
        ("A", "#global"),
        ("B", "#explicit"),
        ("B", "#mine"),
    ]


def test_tracker_deactivate_returns_bar():
    tracker = ActivationTracker()
    assert tracker.deactivate("A", 10) is None
    tracker.activate("A", 10)
    assert tracker.depth("A") == 1
    bar = tracker.deactivate("A", 5)
    assert (bar.start_y, bar.end_y, bar.color) == (10, 10, DEFAULT_ACTIVATION_COLOR)
    assert not tracker.is_active("A")


def test_spans_overlap_is_strict():
    assert spans_overlap((0, 10), (5, 15))
    assert not spans_overlap((0, 10), (10, 20))
    assert spans_overlap((0, 30), (10, 20))


def test_level_packer():
    packer = LevelPacker()
    assert packer.place((0, 10), 100, 50) == 100
    assert packer.place((10, 20), 100, 70) == 100
    assert packer.level == 0
    assert packer.place((5, 15), 100, 50) == 170
    assert packer.level == 1
    assert packer.close(100) == 220
    assert packer.close(300) == 300


def test_parallel_section():
    section = ParallelSection(100)
    assert section.place(50) == 100
    assert section.place(80) == 100
    assert section.close(120) == 180
    assert section.close(400) == 400
