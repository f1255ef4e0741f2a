#!/usr/bin/env python3
"""
Sequence validation — Load every sequence definition and report problems.

Usage:
    python scripts/validate_sequences.py
    python scripts/validate_sequences.py --dir ./assets/sequences --strict

Invalid definitions (duplicate ids, misplaced sequence_id, schema errors)
always fail. Dangling references and unknown transition targets are
warnings, and fail only with --strict.
"""
import os
import sys
import argparse

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def validate(sequences_dir: str, strict: bool = False) -> int:
    from flow.sequences import SequenceLoadError, SequenceRegistry

    registry = SequenceRegistry(sequences_dir)
    available = registry.list_available()
    errors, warnings = [], []

    for sequence_id in available:
        try:
            sequence = registry.load(sequence_id)
        except SequenceLoadError as e:
            errors.append(str(e))
            continue
        warnings.extend(f"{sequence_id}: {w}" for w in registry.find_dangling_references(sequence))
        for target in registry.transition_targets(sequence):
            if target not in available:
                warnings.append(f"{sequence_id}: unknown target sequence '{target}'")

    print(f"Sequences: {len(available)}")
    for line in errors:
        print(f"ERROR   {line}")
    for line in warnings:
        print(f"WARNING {line}")

    if errors or (strict and warnings):
        return 1
    print("OK")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Validate sequence definitions")
    parser.add_argument("--dir", default=None, help="Sequences directory (default: from settings)")
    parser.add_argument("--strict", action="store_true", help="Treat warnings as errors")
    args = parser.parse_args()

    sequences_dir = args.dir
    if sequences_dir is None:
        from config.settings import load_settings
        sequences_dir = load_settings().flow.sequences_dir
    sys.exit(validate(sequences_dir, strict=args.strict))


if __name__ == "__main__":
    main()
