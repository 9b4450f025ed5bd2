"""
wreckit doctor - Report (and optionally repair) workspace drift.
"""

from pathlib import Path

from wreckit.lib.doctor import SEVERITY_ORDER, format_diagnostic, run_doctor


def cmd_doctor(args, root: Path, logger) -> int:
    result = run_doctor(root, fix=args.fix, logger=logger)

    if not result.diagnostics:
        print("No issues found")
        return 0

    for severity in SEVERITY_ORDER:
        group = [d for d in result.diagnostics if d.severity == severity]
        if not group:
            continue
        print(f"{severity.upper()} ({len(group)})")
        for d in group:
            print(f"  {format_diagnostic(d)}")
        print()

    if result.fixes:
        print("Fixes:")
        for f in result.fixes:
            mark = "fixed" if f.fixed else "FAILED"
            where = f" {f.diagnostic.item_id}" if f.diagnostic.item_id else ""
            print(f"  [{mark}] {f.diagnostic.code}{where}: {f.message}")
    elif any(d.fixable for d in result.diagnostics):
        print("Run 'wreckit doctor --fix' to apply fixable repairs")

    return 1 if result.unfixed_errors else 0
