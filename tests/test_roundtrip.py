from dataclasses import fields

import pytest

from seqscript import parse, serialize
from seqscript.syntax import Fragment, ParticipantGroup

SAMPLE = """title Checkout flow
autonumber 1
style warn #red #black;2,**
notestyle #lightyellow
participantgroup #lightgrey Shop
  participant "Web Store" as Web #white #black;1
  database Orders
end
actor Customer
activecolor #lightblue
Customer->Web:open cart
activate Web
Web->Orders:load cart
note right of Orders ##warn:cached
alt cart is empty
  Web-->Customer:nothing to pay
else #yellow items present
  loop each item
    Web->Orders:reserve
    Orders-->>Web:ok
  end
  Web-[#green;2]->Customer:total
end
deactivate Web
==Payment==
linear
Customer->Web:pay
Web->Orders:commit
linear off
space 2
// done
expandable- audit trail
  Orders->Orders:log
end"""

MESSY = """title   Messy   input
participant A
    participant B
alt   first branch
        A->B:go
   else    second
A->B:  back
end
A->B
garbage line here
loop unterminated
A->B:x"""


def signature(document):
    position = {node.id: index for index, node in enumerate(document)}
    result = []
    for node in document:
        data = {
            item.name: getattr(node, item.name)
            for item in fields(node)
            if item.name not in ("id", "source_line_start", "source_line_end")
        }
        if isinstance(node, Fragment):
            data["entries"] = [position[entry] for entry in node.entries]
            data["else_clauses"] = [
                (clause.condition, clause.style, [position[entry] for entry in clause.entries])
                for clause in node.else_clauses
            ]
        if isinstance(node, ParticipantGroup):
            data["participant_ids"] = [position[entry] for entry in node.participant_ids]
            data["nested_groups"] = [position[entry] for entry in node.nested_groups]
        result.append((type(node).__name__, data))
    return result


def test_sample_parses_without_errors():
    assert not parse(SAMPLE).errors()


def test_canonical_text_is_reproduced_exactly():
    assert serialize(parse(SAMPLE)) == SAMPLE


def test_semantic_round_trip():
    first = parse(SAMPLE)
    second = parse(serialize(first))
    assert signature(second) == signature(first)


@pytest.mark.parametrize("text", [SAMPLE, MESSY, "", "\n\n", "end", "alt\nelse\nelse\nend"])
def test_canonicalization_is_idempotent(text):
    once = serialize(parse(text))
    assert serialize(parse(once)) == once


def test_messy_input_is_canonicalized():
    output = serialize(parse(MESSY))
    assert output.splitlines()[:8] == [
        "title Messy   input",
        "participant A",
        "participant B",
        "alt first branch",
        "  A->B:go",
        "else second",
        "  A->B:back",
        "end",
    ]
    assert "// ERROR: garbage line here" in output
