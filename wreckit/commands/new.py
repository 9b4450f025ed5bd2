"""
wreckit new <section> <title> - Create a raw backlog item.
"""

from pathlib import Path

from wreckit.store.items import create_item
from wreckit.store.registry import rebuild_registry


def cmd_new(args, root: Path, logger) -> int:
    item, created = create_item(root, args.section, args.title, args.overview or "")
    if created:
        logger.info(f"Created {item.id}")
        rebuild_registry(root)
    else:
        logger.info(f"Item already exists: {item.id} ({item.state.value})")
    print(item.id)
    return 0
