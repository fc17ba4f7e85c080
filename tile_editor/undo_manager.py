"""
Undo and redo management for the tile editor.
Each record groups every cell change made by one committed edit.
"""

from typing import List

from .models import CellChange, EditRecord


class UndoManager:
    def __init__(self, max_history: int = 100):
        self.max_history = max_history
        self.undo_stack: List[EditRecord] = []
        self.redo_stack: List[EditRecord] = []

    @property
    def can_undo(self) -> bool:
        return bool(self.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    def push(self, label: str, surface, changes: List[CellChange]) -> bool:
        """Records one edit. Edits that changed nothing are not recorded."""
        if not changes:
            return False

        self.undo_stack.append(EditRecord(label, surface, list(changes)))
        self.redo_stack.clear()
        if len(self.undo_stack) > self.max_history:
            self.undo_stack.pop(0)
        return True

    def undo(self) -> bool:
        if not self.undo_stack:
            return False

        record = self.undo_stack.pop()
        self.redo_stack.append(record)
        record.surface.apply_changes(reversed(record.changes), forward=False)
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False

        record = self.redo_stack.pop()
        self.undo_stack.append(record)
        record.surface.apply_changes(record.changes, forward=True)
        return True

    def clear(self):
        self.undo_stack.clear()
        self.redo_stack.clear()
