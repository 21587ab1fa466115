"""Shared fixtures: small on-disk corpora."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

import pytest

X_TOPIC = """---
title: Error handling patterns
description: How to raise and handle errors in codeunits
area: a
difficulty: intermediate
tags: [errors, handling, codeunits]
---
# Error handling patterns

Use try functions to handle error conditions. See the samples file for code.

## Error handling with TryFunction

Wrap risky calls and inspect the last error text.

## Logging telemetry

Emit telemetry for unexpected failures.
"""

X_SAMPLES = """# Error handling samples

```al
procedure SafePost()
begin
    if not TryPost() then
        Error(GetLastErrorText());
end;
```

```al
[TryFunction]
procedure TryPost()
begin
end;
```
"""

Y_TOPIC = """# Naming conventions

Keep object names short and prefix them with the app affix.
"""


@pytest.fixture
def make_corpus(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Write `{"area/file.md": text}` under `<tmp>/kb/areas` and return the root."""

    def _make(files: Dict[str, str]) -> Path:
        root = tmp_path / "kb"
        (root / "areas").mkdir(parents=True, exist_ok=True)
        for rel_path, content in files.items():
            path = root / "areas" / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _make


@pytest.fixture
def sample_corpus(make_corpus: Callable[[Dict[str, str]], Path]) -> Path:
    """Area `a` holds the pair x.md + x-samples.md, area `b` holds y.md without front matter."""
    return make_corpus(
        {
            "a/x.md": X_TOPIC,
            "a/x-samples.md": X_SAMPLES,
            "b/y.md": Y_TOPIC,
        }
    )
