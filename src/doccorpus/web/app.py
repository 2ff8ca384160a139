"""FastAPI application exposing the corpus tools."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from doccorpus import __version__
from doccorpus.config import config_from_env
from doccorpus.errors import CorpusNotReady, PreparationError
from doccorpus.prepare.pipeline import CorpusPipeline
from doccorpus.query.facade import QueryFacade
from doccorpus.query.tools import Tool, build_tools

LOGGER = logging.getLogger(__name__)

READY_TIMEOUT_SECONDS = 30.0

app = FastAPI(title="doccorpus", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_facade() -> QueryFacade:
    pipeline = CorpusPipeline(config_from_env())
    return QueryFacade(pipeline, wait_timeout=READY_TIMEOUT_SECONDS)


@lru_cache(maxsize=8)
def _tool_table(facade: QueryFacade) -> Dict[str, Tool]:
    return build_tools(facade)


def get_tools(facade: QueryFacade = Depends(get_facade)) -> Dict[str, Tool]:
    return _tool_table(facade)


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    facade = app.dependency_overrides.get(get_facade, get_facade)()
    LOGGER.info("Serving corpus at %s", facade.pipeline.store.root)


@app.get("/health")
async def health(facade: QueryFacade = Depends(get_facade)) -> dict[str, Any]:
    snapshot = facade.pipeline.snapshot
    return {
        "state": facade.pipeline.state.value,
        "generation": snapshot.generation if snapshot is not None else None,
    }


@app.get("/tools")
async def list_tools(tools: Dict[str, Tool] = Depends(get_tools)) -> List[dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.input_model.model_json_schema(),
        }
        for tool in tools.values()
    ]


@app.post("/tools/{name}")
async def call_tool(
    name: str,
    payload: Optional[dict[str, Any]] = Body(None),
    tools: Dict[str, Tool] = Depends(get_tools),
) -> Any:
    tool = tools.get(name)
    if tool is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")

    try:
        result = await asyncio.to_thread(tool.call, payload or {})
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail=exc.errors(include_url=False, include_context=False)
        ) from exc
    except CorpusNotReady as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except PreparationError as exc:
        LOGGER.error("Tool %s failed: %s", name, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    if result is None:
        raise HTTPException(status_code=404, detail="Not found")
    return result
