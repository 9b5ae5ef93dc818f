# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Working copy of a project that model tool calls read and edit.

An orchestrator creates one FileWorkspace per generation, wires its
methods to the model's file tools, and hands finalize()'s file map to the
persistence layer. Every method returns a ToolResult; nothing raises for
a bad path, selector or search string.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from sitepatch import DomAction, DomOperation, EditOperation, InsertPosition
from sitepatch.blocks import assign_block_ids, block_selector
from sitepatch.components import ExtractedComponent, extract_components
from sitepatch.config import EngineSettings, get_settings
from sitepatch.dom_operations import apply_dom_operations
from sitepatch.errors import ErrorKind
from sitepatch.files import ProjectFileSet, ValidationResult, component_filename, validate_artifact
from sitepatch.search_replace import apply_edit_operations
from sitepatch.tool_results import ToolFailure, ToolResult, ToolSuccess

logger = logging.getLogger(__name__)

# edit_block() verbs that are not DomAction names
_BLOCK_ACTION_ALIASES: dict[str, tuple[DomAction, InsertPosition | None]] = {
    "replaceInner": (DomAction.SET_HTML, None),
    "insertBefore": (DomAction.INSERT_ADJACENT_HTML, InsertPosition.BEFORE_BEGIN),
    "insertAfter": (DomAction.INSERT_ADJACENT_HTML, InsertPosition.AFTER_END),
}


@dataclass
class FinalizedArtifact:
    files: dict[str, str]
    assigned_blocks: list[str] = field(default_factory=list)
    components: list[ExtractedComponent] = field(default_factory=list)
    validation: ValidationResult = field(default_factory=lambda: ValidationResult(True))


class FileWorkspace:
    """Private, mutable copy of a project's files."""

    def __init__(
        self,
        files: Mapping[str, str] | ProjectFileSet | None = None,
        *,
        settings: EngineSettings | None = None,
    ) -> None:
        initial = files.to_dict() if isinstance(files, ProjectFileSet) else dict(files or {})
        self._files = ProjectFileSet(initial)
        self._settings = settings or get_settings()

    @property
    def files(self) -> ProjectFileSet:
        """A snapshot; mutating it does not affect the workspace."""
        return self._files.copy()

    def _available(self) -> str:
        return ", ".join(self._files.paths()) or "none"

    def _not_found(self, path: str, hint: str = "") -> ToolFailure:
        message = f'File "{path}" not found. Available files: {self._available()}.'
        if hint:
            message += f" {hint}"
        return ToolFailure(message=message, kind=ErrorKind.FILE_NOT_FOUND)

    # -- tools -----------------------------------------------------------------

    def write_files(self, files: Mapping[str, str]) -> ToolResult:
        """Create or overwrite whole files; files not named are preserved."""
        self._files.write_many(files)
        logger.info("Wrote %d file(s): %s", len(files), ", ".join(files))
        return ToolSuccess({"files": list(files)})

    def read_file(self, path: str) -> ToolResult:
        content = self._files.read(path)
        if content is None:
            return self._not_found(path)
        return ToolSuccess({"file": path, "content": content, "length": len(content)})

    def edit_file(self, path: str, operations: Sequence[EditOperation]) -> ToolResult:
        """Search/replace edits. A partial failure keeps the applied prefix."""
        source = self._files.read(path)
        if source is None:
            return self._not_found(path, "Use write_files to create it.")

        result = apply_edit_operations(source, operations, settings=self._settings)
        if result.applied_count:
            self._files.write(path, result.text)

        if result.ok:
            return ToolSuccess({"file": path, "content": result.text, "tiers": [str(t) for t in result.tiers]})

        message = f'{result.error} in "{path}".'
        if result.best_match is not None:
            message += f"\nClosest text:\n{result.best_match.surrounding}"
        message += "\nRetry only the failed operation with corrected search text, or use write_files."
        return ToolFailure(message=message, kind=result.error_kind, details=result.to_dict())

    def apply_dom(self, path: str, operations: Sequence[DomOperation]) -> ToolResult:
        """Selector-addressed edits with itemized per-operation results."""
        source = self._files.read(path)
        if source is None:
            return self._not_found(path)

        result = apply_dom_operations(source, operations)
        if result.applied_count:
            self._files.write(path, result.html)

        if result.all_succeeded:
            return ToolSuccess({"file": path, "content": result.html, "results": result.to_dict()["results"]})

        failed = result.failures
        lines = [f"{len(failed)} of {len(operations)} DOM operation(s) failed in \"{path}\":"]
        lines.extend(f"  #{r.index + 1}: {r.error}" for r in failed)
        return ToolFailure(message="\n".join(lines), kind=failed[0].error_kind, details=result.to_dict())

    def edit_block(
        self,
        path: str,
        block_id: str,
        action: str,
        *,
        value: str | None = None,
        attr: str | None = None,
        old_class: str | None = None,
        new_class: str | None = None,
        position: str | None = None,
    ) -> ToolResult:
        """Edit the element carrying ``data-block=block_id``.

        ``action`` is a DomAction name or one of the block verbs
        replaceInner, insertBefore and insertAfter; ``position`` is only
        read for insertAdjacentHTML.

        Shared components live in ``_components/``; addressing one through a
        page is answered with a pointer to the component file.
        """
        component = component_filename(block_id)
        source = self._files.read(path)
        if source is None:
            if component in self._files:
                return ToolFailure(
                    message=f'Block "{block_id}" is a shared component. Edit "{component}" instead.',
                    kind=ErrorKind.FILE_NOT_FOUND,
                )
            return self._not_found(path)

        dom_action, alias_position = _BLOCK_ACTION_ALIASES.get(action, (action, None))
        op = DomOperation(
            selector=block_selector(block_id),
            action=dom_action,
            attr=attr,
            value=value,
            old_class=old_class,
            new_class=new_class,
            position=alias_position or position,
        )
        result = self.apply_dom(path, [op])
        if (
            isinstance(result, ToolFailure)
            and result.kind is ErrorKind.SELECTOR_NOT_FOUND
            and component in self._files
            and path != component
        ):
            return ToolFailure(
                message=f'Block "{block_id}" not found in "{path}". It is a shared component; edit "{component}" instead.',
                kind=ErrorKind.SELECTOR_NOT_FOUND,
            )
        return result

    # -- post-processing -------------------------------------------------------

    def finalize(self) -> FinalizedArtifact:
        """Assign block ids, extract shared components, validate.

        The workspace adopts the post-processed files.
        """
        assignment = assign_block_ids(self._files.to_dict())
        extraction = extract_components(assignment.files, settings=self._settings)
        self._files = ProjectFileSet(extraction.files)
        validation = validate_artifact(extraction.files)
        if not validation.valid:
            logger.warning("Finalized artifact is not persistable: %s", validation.reason)
        return FinalizedArtifact(
            files=extraction.files,
            assigned_blocks=assignment.assigned,
            components=extraction.components,
            validation=validation,
        )
