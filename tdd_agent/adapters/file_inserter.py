"""Append generated code blocks to fixed test/implementation files."""
from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FileCodeInserter:
    def __init__(self, test_file: str | Path | None = None, implementation_file: str | Path | None = None):
        self.test_file = Path(test_file) if test_file else None
        self.implementation_file = Path(implementation_file) if implementation_file else None

    def insert_test(self, code: str) -> bool:
        return self._append(self.test_file, code, "test")

    def insert_implementation(self, code: str) -> bool:
        return self._append(self.implementation_file, code, "implementation")

    def _append(self, path: Path | None, code: str, kind: str) -> bool:
        if path is None:
            logger.warning("No %s file configured; cannot insert code", kind)
            return False
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            existing = path.read_text(encoding="utf-8") if path.exists() else ""
            separator = "\n\n" if existing.strip() else ""
            path.write_text(existing.rstrip() + separator + code.strip() + "\n", encoding="utf-8")
        except OSError as e:
            logger.error("Failed to insert %s into %s: %s", kind, path, e)
            return False
        logger.info("Inserted %s (%d chars) into %s", kind, len(code), path)
        return True
