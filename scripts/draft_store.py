#!/usr/bin/env python3
"""
OCR draft persistence.

The draft being reviewed survives page reloads and restarts by writing
through to a DraftStore. The session object keeps the in-memory state as
the source of truth; the store only mirrors it.
"""

import json
import logging
import os
import threading
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from scripts.draft_rules import reconcile_edit
from scripts.event_text_parser import EventTextParser

logger = logging.getLogger(__name__)


def empty_state() -> Dict[str, Any]:
    return {'ocr_text': '', 'draft': None, 'open': False}


class DraftStore:
    """Persistence capability for the OCR draft state"""

    def load(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def save(self, state: Dict[str, Any]) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class InMemoryDraftStore(DraftStore):
    """Keeps the state in process memory (tests, single-process dev servers)"""

    def __init__(self):
        self._state = None

    def load(self):
        return json.loads(json.dumps(self._state)) if self._state is not None else None

    def save(self, state):
        self._state = json.loads(json.dumps(state))

    def clear(self):
        self._state = None


class JsonFileDraftStore(DraftStore):
    """Keeps the state in a JSON file"""

    def __init__(self, path):
        self.path = Path(path)

    def load(self):
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read OCR draft from {self.path}: {e}")
            return None

    def save(self, state):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(state, f, indent=2)
        os.replace(tmp_path, self.path)

    def clear(self):
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class OcrDraftSession:
    """
    The OCR draft under review.

    Every change (new text, field edit, reset) updates the in-memory state
    and then writes it through to the store.
    """

    def __init__(self, store: DraftStore, parser_factory: Callable[[date], EventTextParser] = None,
                 today_fn: Callable[[], date] = None):
        self.store = store
        self.parser_factory = parser_factory or (lambda today: EventTextParser(today=today))
        self.today_fn = today_fn or date.today
        self.state = empty_state()
        self._lock = threading.Lock()

    def load(self) -> Dict[str, Any]:
        """Restore the persisted state, or start empty"""
        with self._lock:
            stored = self.store.load()
            state = empty_state()
            if isinstance(stored, dict):
                state.update({key: stored.get(key, state[key]) for key in state})
            self.state = state
            return dict(self.state)

    def set_text(self, ocr_text: str) -> Dict[str, Any]:
        """Replace the OCR text and re-parse it into a fresh draft"""
        with self._lock:
            parser = self.parser_factory(self.today_fn())
            draft = parser.parse(ocr_text).to_dict()
            self.state = {'ocr_text': ocr_text or '', 'draft': draft, 'open': True}
            self.store.save(self.state)
            return dict(self.state)

    def edit(self, field: str, value: Any, commit: bool = True) -> Dict[str, Any]:
        """Apply one field edit through the reconciliation rules"""
        with self._lock:
            if not self.state.get('draft'):
                raise LookupError('No OCR draft to edit')
            draft = reconcile_edit(self.state['draft'], field, value, today=self.today_fn(), commit=commit)
            self.state = dict(self.state, draft=draft)
            self.store.save(self.state)
            return dict(self.state)

    def reset(self) -> Dict[str, Any]:
        """Drop the draft and the OCR text"""
        with self._lock:
            self.state = empty_state()
            self.store.clear()
            return dict(self.state)
