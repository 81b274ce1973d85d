"""
Utility script to verify and analyze a normalized JSONL output file.
"""
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Dict


def analyze_output(file_path: Path) -> Dict:
    """
    Collect statistics about a normalized output file.

    Args:
        file_path: Path to a ``<PROJECT>_issues.jsonl`` file

    Returns:
        Dictionary of statistics

    Raises:
        FileNotFoundError: If the file does not exist
    """
    records = []
    unparsable = 0
    with open(file_path, 'r', encoding='utf-8') as f:
        for line in f:
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                unparsable += 1

    return {
        "total_records": len(records),
        "unparsable_lines": unparsable,
        "status": Counter(r.get("status", "Unknown") for r in records),
        "with_description": sum(1 for r in records if r.get("description")),
        "with_comments": sum(1 for r in records if r.get("comments")),
        "with_assignee": sum(1 for r in records if r.get("assignee")),
        "total_comments": sum(len(r.get("comments") or []) for r in records),
        "duplicate_ids": sum(
            count - 1 for count in Counter(r.get("id") for r in records).values() if count > 1
        ),
        "sample": records[0] if records else None,
    }


def print_report(file_path: Path, stats: Dict):
    print("\n" + "=" * 60)
    print(f"OUTPUT ANALYSIS: {file_path}")
    print("=" * 60)
    print(f"\nTotal records: {stats['total_records']}")
    print(f"Unparsable lines: {stats['unparsable_lines']}")
    print(f"Duplicate ids: {stats['duplicate_ids']}")

    print("\nStatus distribution:")
    for status, count in stats["status"].most_common(10):
        print(f"  {status}: {count}")

    print("\nContent statistics:")
    print(f"  Records with description: {stats['with_description']}")
    print(f"  Records with comments: {stats['with_comments']}")
    print(f"  Records with assignee: {stats['with_assignee']}")
    print(f"  Total comments: {stats['total_comments']}")

    if stats["sample"]:
        print("\n" + "=" * 60)
        print("SAMPLE RECORD (first record):")
        print("=" * 60)
        print(json.dumps(stats["sample"], indent=2, ensure_ascii=False)[:1000] + "...")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python verify_output.py <output.jsonl>")
        sys.exit(2)

    output_file = Path(sys.argv[1])
    if not output_file.exists():
        print(f"Error: Output file not found at {output_file}")
        sys.exit(1)

    print_report(output_file, analyze_output(output_file))
