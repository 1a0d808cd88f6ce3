"""Result dataclasses reported by the launcher stages."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PrepareResult:
    project_dir: str
    skipped: bool = False
    merged_parts: list[str] = field(default_factory=list)
    archive_removed: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            'project_dir': self.project_dir,
            'skipped': self.skipped,
            'merged_parts': list(self.merged_parts),
            'archive_removed': self.archive_removed,
        }
