"""
wreckit show <id> - Show an item's record and artifacts.
"""

import json
from pathlib import Path

from wreckit.store import paths
from wreckit.store.items import read_item, read_story_document


def cmd_show(args, root: Path) -> int:
    item = read_item(root, args.id)
    doc = read_story_document(root, args.id)

    if args.json:
        data = item.to_dict()
        data["prd"] = doc.to_dict() if doc else None
        print(json.dumps(data, indent=2))
        return 0

    print(f"Item: {item.id}")
    print("=" * 60)
    print()
    print(f"Title:      {item.title}")
    print(f"State:      {item.state.value}")
    print(f"Branch:     {item.branch or '-'}")
    print(f"PR:         {item.pr_url or '-'}")
    if item.last_error:
        print(f"Last error: {item.last_error}")
    print()

    for label, path in (
        ("research.md", paths.research_path(root, item.id)),
        ("plan.md", paths.plan_path(root, item.id)),
        ("prd.json", paths.prd_path(root, item.id)),
    ):
        print(f"{label:<12} {'yes' if path.exists() else 'no'}")

    if doc:
        done = sum(1 for s in doc.stories if s.status == "done")
        print()
        print(f"Stories:    {done}/{len(doc.stories)} done")
        for s in doc.stories:
            mark = "x" if s.status == "done" else " "
            print(f"  [{mark}] {s.id} (p{s.priority}) {s.title}")

    if item.overview:
        print()
        print(item.overview)
    return 0
