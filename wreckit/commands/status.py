"""
wreckit status - List items and their states.
"""

import json
from pathlib import Path

from wreckit.store.items import scan_items


def cmd_status(args, root: Path) -> int:
    entries = scan_items(root)

    if args.json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    if not entries:
        print("No items. Create one with 'wreckit new <section> <title>'")
        return 0

    width = max(len(e.id) for e in entries)
    for e in entries:
        print(f"{e.id:<{width}}  {e.state.value:<12}  {e.title}")
    return 0
