"""Review instructions and comment composition."""

from __future__ import annotations

from pathlib import Path

DEFAULT_INSTRUCTIONS = """\
# Here are the requirements for a Pull Request

## Summary

* Why change is necessary (fix, update, new feature)?
* What functional part of the code is being changed?
* How does the change exactly work (what will change and how)?
* Related Issue reference if applicable.
* Related Pull Request reference in dependent repositories if applicable.

## Impact

* Is new feature added? Is existing feature changed?
* Impact on user (will user need to adapt to change)? NO / YES (please describe if yes).
* Impact on build (will build process change)? NO / YES (please describe if yes).
* Impact on hardware (will arch(s) / board(s) / driver(s) change)? NO / YES (please describe if yes).
* Impact on documentation (is update required / provided)? NO / YES (please describe if yes).
* Impact on security (any sort of implications)? NO / YES (please describe if yes).
* Impact on compatibility (backward/forward/interoperability)? NO / YES (please describe if yes).
* Anything else to consider?

## Testing

I confirm that changes are verified on local setup and works as intended:
* Build Host(s): OS (Linux,BSD,macOS,Windows,..), CPU(Intel,AMD,ARM), compiler(GCC,CLANG,version), etc.
* Target(s): arch(sim,RISC-V,ARM,..), board:config, etc.

Testing logs before change:

```
your testing logs here
```

Testing logs after change:
```
your testing logs here
```"""

QUESTION = "\n\n# Does this PR meet the requirements?\n\n"


def load_instructions(path: Path | None = None) -> str:
    """Return the review instructions, from ``path`` when given."""
    if path is None:
        return DEFAULT_INSTRUCTIONS
    return path.read_text(encoding="utf-8").rstrip()


def build_prompt(instructions: str, body: str) -> str:
    """Concatenate the fixed instructions with a pull request description."""
    return instructions + QUESTION + body


def compose_comment(header: str, precheck_text: str, generated_text: str) -> str:
    """Assemble the published comment.

    The layout is always ``header``, blank line, advisories, blank line,
    review text, even when there are no advisories.
    """
    return header + "\n\n" + precheck_text + "\n\n" + generated_text
