from rich import print
from rich.markup import escape

from seqscript import calculate_layout, parse, serialize
from seqscript.layout import MessageGeometry
from seqscript.syntax import Message

SOURCE = """title Login
participant Browser
participant "Auth Service" as Auth
database Users

autonumber 1
Browser->Auth:POST /login
activate Auth
Auth->Users:find user
Users-->Auth:row
alt password ok
    Auth-->Browser:200 token
else
    Auth-->Browser:401
end
deactivate Auth
"""


def main() -> None:
    document = parse(SOURCE)
    print("[bold]Canonical text[/bold]")
    print(escape(serialize(document)))

    result = calculate_layout(document)
    print("\n[bold]Messages[/bold]")
    for node in document.filter(Message):
        geometry = result[node.id]
        if isinstance(geometry, MessageGeometry):
            print(f"  #{geometry.number} {escape(node.label)}: y={geometry.y:g} x={geometry.from_x:g}->{geometry.to_x:g}")
    for bar in result.activations:
        print(f"  [#0a7e89]{bar.participant}[/#0a7e89] active {bar.start_y:g}..{bar.end_y:g}")
    print(f"Total height: {result.total_height:g}")


if __name__ == "__main__":
    main()
