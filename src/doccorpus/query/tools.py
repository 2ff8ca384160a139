"""Fixed table of externally callable operations and their input contracts."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from doccorpus.models import AnswerEntry, RebuildResult
from doccorpus.query.facade import QueryFacade


class GetDocumentsInput(BaseModel):
    paths: List[str] = Field(..., min_length=1, description="Logical corpus paths to fetch.")
    keywords: Optional[List[str]] = Field(
        None, description="Keywords used to search when a path is not found exactly."
    )


class GetChangelogInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    package_name: str = Field(..., alias="packageName", min_length=1)


class EmptyInput(BaseModel):
    pass


@dataclass(frozen=True, slots=True)
class Tool:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[Any], Any]

    def call(self, payload: Dict[str, Any]) -> Any:
        """Validate ``payload`` against the input contract and run the handler.

        Raises ``pydantic.ValidationError`` on invalid input.
        """
        return self.handler(self.input_model.model_validate(payload))


def answer_to_dict(entry: AnswerEntry) -> Dict[str, Any]:
    data: Dict[str, Any] = {"kind": entry.kind, "path": entry.path, "status": entry.status}
    if entry.kind == "content":
        data.update(text=entry.text, truncated=entry.truncated)
    elif entry.kind == "listing":
        data.update(dirs=entry.dirs, files=entry.files)
    else:
        data["results"] = [asdict(result) for result in entry.results]
    return data


def rebuild_to_dict(result: RebuildResult) -> Dict[str, Any]:
    return {
        "generation": result.generation,
        "perRoot": [
            {
                "root": str(outcome.root),
                "dest": outcome.dest,
                "ok": outcome.ok,
                "files": outcome.files,
                "error": outcome.error,
            }
            for outcome in result.roots
        ],
        "examples": result.examples,
        "changelogs": result.changelogs,
        "warnings": result.warnings,
    }


def build_tools(facade: QueryFacade) -> Dict[str, Tool]:
    """Assemble the tool table once for a facade."""

    def get_documents(payload: GetDocumentsInput) -> List[Dict[str, Any]]:
        return [answer_to_dict(e) for e in facade.answer(payload.paths, payload.keywords)]

    def get_changelog(payload: GetChangelogInput) -> Optional[Dict[str, Any]]:
        document = facade.get_changelog(payload.package_name)
        if document is None:
            return None
        return {
            "packageName": document.package_name,
            "content": document.content,
            "truncated": document.truncated,
        }

    def list_changelogs(payload: EmptyInput) -> Dict[str, Any]:
        return {"packages": facade.list_changelogs()}

    def rebuild_corpus(payload: EmptyInput) -> Dict[str, Any]:
        return rebuild_to_dict(facade.rebuild())

    tools = [
        Tool(
            "get_documents",
            "Fetch documents or directory listings by path, with keyword search fallback.",
            GetDocumentsInput,
            get_documents,
        ),
        Tool("get_changelog", "Fetch the changelog of a package.", GetChangelogInput, get_changelog),
        Tool("list_changelogs", "List packages with a changelog.", EmptyInput, list_changelogs),
        Tool(
            "rebuild_corpus",
            "Rebuild and publish a new corpus generation.",
            EmptyInput,
            rebuild_corpus,
        ),
    ]
    return {tool.name: tool for tool in tools}
