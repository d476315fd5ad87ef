from dataclasses import dataclass, field


@dataclass(frozen=True)
class Edit:
    """Replace source[start:end] with `text`. start == end is an insertion."""
    start: int
    end: int
    text: bytes


@dataclass
class EditPlan:
    """
    Collects byte-range edits while walking a (read-only) tree-sitter tree and
    applies them in one go afterwards.

    Edits nested inside a larger edit are dropped: deleting a stale function
    also discards any replacement planned inside its body. Edits that overlap
    without nesting are a programming error.
    """
    edits: list[Edit] = field(default_factory=list)

    def replace(self, start: int, end: int, text: str):
        self.edits.append(Edit(start, end, text.encode("utf-8")))

    def insert(self, offset: int, text: str):
        self.replace(offset, offset, text)

    def delete(self, start: int, end: int):
        self.replace(start, end, "")

    def __len__(self):
        return len(self.edits)

    def _effective(self) -> list[Edit]:
        # Insertions first, then the widest range, for edits starting at the same offset.
        ordered = sorted(self.edits, key=lambda e: (e.start, e.start != e.end, -e.end))
        kept: list[Edit] = []
        span = None  # last kept non-empty range
        for edit in ordered:
            if span is not None:
                if edit.start == edit.end:
                    inside = span.start < edit.start < span.end
                else:
                    inside = span.start <= edit.start and edit.end <= span.end
                if inside:
                    continue
                if edit.start < span.end:
                    raise ValueError(
                        f"overlapping edits at bytes {span.start}-{span.end} and {edit.start}-{edit.end}")
            kept.append(edit)
            if edit.start < edit.end:
                span = edit
        return kept

    def apply(self, source: bytes) -> bytes:
        out = []
        cursor = 0
        for edit in self._effective():
            out.append(source[cursor:edit.start])
            out.append(edit.text)
            cursor = edit.end
        out.append(source[cursor:])
        return b"".join(out)
