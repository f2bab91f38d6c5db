"""
Switchboard Config Server - FastAPI Application

HTTP front end over an EnvironmentRepository:
- GET /{application}/{profile}[/{label}]         Environment JSON
- GET /[{label}/]{application}-{profile}.{ext}   flattened view (json, yml, yaml, properties)
- GET /health                                     liveness
"""

import logging
from typing import Optional

import yaml
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from switchboard_config import __version__
from switchboard_config.environment import Environment
from switchboard_config.repository import EnvironmentRepository, NoSuchLabelError, NoSuchRepositoryError

logger = logging.getLogger(__name__)

FLAT_FORMATS = ("json", "yml", "yaml", "properties")

# "(_)" in a label path segment stands for "/" (e.g. feature(_)login -> feature/login)
LABEL_SLASH_ESCAPE = "(_)"


def decode_label(label: Optional[str]) -> Optional[str]:
    if label is None:
        return None
    return label.replace(LABEL_SLASH_ESCAPE, "/")


def nest_properties(properties: dict[str, str]) -> dict:
    """
    Rebuild a nested mapping from dot-delimited keys for YAML output.

    A key that collides with an existing leaf (e.g. "a.b" after "a") stays
    flat under its full dotted key.
    """
    nested: dict = {}
    for key in sorted(properties):
        parts = key.split(".")
        node = nested
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if child is not None:
                    node = None
                    break
                child = node[part] = {}
            node = child
        if node is None or isinstance(node.get(parts[-1]), dict):
            nested[key] = properties[key]
        else:
            node[parts[-1]] = properties[key]
    return nested


def render_properties(properties: dict[str, str]) -> str:
    lines = []
    for key in sorted(properties):
        value = properties[key].replace("\\", "\\\\").replace("\n", "\\n")
        lines.append(f"{key}={value}")
    return "\n".join(lines) + ("\n" if lines else "")


def create_app(repository: EnvironmentRepository, version: str = __version__) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        repository: Top-level repository (normally the Parameter Store decorator)
        version: Reported by /health

    Returns:
        FastAPI app ready for uvicorn
    """
    app = FastAPI(
        title="Switchboard Config Server",
        version=version,
        description="Versioned application configuration with Parameter Store enrichment",
    )
    app.state.repository = repository

    @app.exception_handler(NoSuchLabelError)
    async def no_such_label_handler(request: Request, exc: NoSuchLabelError):
        logger.info("Label not found: %s", exc.label)
        return JSONResponse(status_code=404, content={"detail": str(exc), "type": "NoSuchLabelError"})

    @app.exception_handler(NoSuchRepositoryError)
    async def no_such_repository_handler(request: Request, exc: NoSuchRepositoryError):
        return JSONResponse(status_code=404, content={"detail": str(exc), "type": "NoSuchRepositoryError"})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc), "type": "ValueError"})

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception serving %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__,
            },
        )

    def _find(application: str, profile: str, label: Optional[str], include_origin: bool) -> Environment:
        logger.info(
            "Resolving configuration | application=%s | profile=%s | label=%s",
            application,
            profile,
            label,
        )
        return repository.find_one(application, profile, label, include_origin)

    def _environment_response(application: str, profile: str, label: Optional[str], include_origin: bool):
        environment = _find(application, profile, label, include_origin)
        return environment.to_dict(include_origin=include_origin)

    def _flat_response(application: str, profile: str, label: Optional[str], ext: str) -> Response:
        properties = _find(application, profile, label, False).merged()
        if ext == "json":
            return JSONResponse(content=properties)
        if ext == "properties":
            return PlainTextResponse(render_properties(properties))
        body = yaml.safe_dump(nest_properties(properties), default_flow_style=False, sort_keys=True)
        return Response(content=body, media_type="text/yaml")

    def _flat_endpoints(ext: str):
        def labelled_flat_properties(label: str, application: str, profile: str):
            return _flat_response(application, profile, decode_label(label), ext)

        def flat_properties(application: str, profile: str):
            return _flat_response(application, profile, None, ext)

        return labelled_flat_properties, flat_properties

    @app.get("/health")
    def health_check():
        return {"status": "UP", "version": version}

    # Flattened routes first: "/main/billing-dev.yml" would otherwise match /{application}/{profile}.
    # One route per format, so "/billing/prod-1.2" still reaches the Environment routes.
    for ext in FLAT_FORMATS:
        labelled, unlabelled = _flat_endpoints(ext)
        app.add_api_route(f"/{{label}}/{{application}}-{{profile}}.{ext}", labelled, methods=["GET"])
        app.add_api_route(f"/{{application}}-{{profile}}.{ext}", unlabelled, methods=["GET"])

    @app.get("/{application}/{profile}")
    def default_label_environment(
        application: str,
        profile: str,
        include_origin: bool = Query(False, description="Include per-value origin"),
    ):
        return _environment_response(application, profile, None, include_origin)

    @app.get("/{application}/{profile}/{label}")
    def labelled_environment(
        application: str,
        profile: str,
        label: str,
        include_origin: bool = Query(False, description="Include per-value origin"),
    ):
        return _environment_response(application, profile, decode_label(label), include_origin)

    return app
