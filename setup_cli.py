#!/usr/bin/env python3
"""Interactive setup utility for notegen.

The script collects the Groq and Mistral API keys and writes them to the
user's config.env, the same file the web page updates whenever a key is
edited. Any unrelated entries already in the file are preserved at the
bottom.
"""

from __future__ import annotations

import getpass
import sys

from config_helpers import (
    ENV_PATH,
    GROQ_KEY_NAME,
    MISTRAL_KEY_NAME,
    collect_preserved_lines,
    parse_env_file,
    preview_key,
    write_env_file,
)


def _prompt_api_key(label: str, existing: str | None, required: bool) -> str:
    if existing:
        keep = input(
            f"A {label} API key is already stored ({preview_key(existing)}). Keep it? [Y/n]: "
        ).strip().lower()
        if keep in {"", "y", "yes"}:
            return existing
    while True:
        key = getpass.getpass(f"Paste your {label} API key: ").strip()
        if key or not required:
            return key
        print("The API key cannot be empty. Try again.")


def _confirm(prompt: str) -> bool:
    while True:
        answer = input(f"{prompt} [Y/n]: ").strip().lower()
        if answer in {"", "y", "yes"}:
            return True
        if answer in {"n", "no"}:
            return False
        print("Answer y or n.")


def main() -> int:
    print("Welcome to the notegen setup.\n")
    existing = parse_env_file(ENV_PATH)

    mistral_key = _prompt_api_key("Mistral (notes)", existing.get(MISTRAL_KEY_NAME), required=True)
    groq_key = _prompt_api_key(
        "Groq (audio, leave empty to skip)", existing.get(GROQ_KEY_NAME), required=False
    )

    print("\nSummary:")
    print(f"  Mistral: {preview_key(mistral_key)}")
    print(f"  Groq:    {preview_key(groq_key) if groq_key else '(not set)'}")

    if not _confirm(f"Save to {ENV_PATH}?"):
        print("Cancelled. Nothing was saved.")
        return 0

    values = {MISTRAL_KEY_NAME: mistral_key, GROQ_KEY_NAME: groq_key}
    preserved_lines = collect_preserved_lines(ENV_PATH)
    write_env_file(values, preserved_lines, ENV_PATH)

    print(f"\nDone! The keys were saved to {ENV_PATH}.")
    print("Run `notegen` to start the web app.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
