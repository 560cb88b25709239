#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under src/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

import yaml


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from src.specs.models import (  # noqa: E402
    SCHEMA_MODELS,
    BackgroundListResponse,
    ErrorResponse,
    RenderMomentRequest,
    RenderMomentResponse,
)


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def generate_model_schemas() -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, SCHEMAS_DIR / filename)


def _error(description: str) -> dict:
    return {
        "description": description,
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ErrorResponse"}}},
    }


def _png(description: str) -> dict:
    return {
        "description": description,
        "content": {"image/png": {"schema": {"type": "string", "format": "binary"}}},
    }


def build_openapi() -> dict:
    # Inline the model schemas as OpenAPI components
    components = {
        "schemas": {
            "ErrorResponse": ErrorResponse.model_json_schema(),
            "BackgroundListResponse": BackgroundListResponse.model_json_schema(),
            "RenderMomentRequest": RenderMomentRequest.model_json_schema(),
            "RenderMomentResponse": RenderMomentResponse.model_json_schema(),
        }
    }

    spec = {
        "openapi": "3.0.3",
        "info": {
            "title": "EverMoment Functions API",
            "version": "0.1.0",
            "description": "HTTP endpoints exposed by the EverMoment Azure Functions app.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": {
            "/remove-bg": {
                "post": {
                    "summary": "Remove the background of an uploaded photo",
                    "operationId": "removeBackground",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "multipart/form-data": {
                                "schema": {
                                    "type": "object",
                                    "properties": {"image_file": {"type": "string", "format": "binary"}},
                                    "required": ["image_file"],
                                }
                            }
                        },
                    },
                    "responses": {
                        "200": _png("Cut-out subject"),
                        "400": _error("Missing file, wrong type or too large"),
                        "401": _error("Invalid API key"),
                        "402": _error("Credits exhausted"),
                        "429": _error("Too many requests"),
                        "500": _error("Service not configured or processing failed"),
                    },
                }
            },
            "/backgrounds/list": {
                "get": {
                    "summary": "List active background templates",
                    "operationId": "listBackgrounds",
                    "responses": {
                        "200": {
                            "description": "Backgrounds in display order",
                            "content": {
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/BackgroundListResponse"}
                                }
                            },
                        },
                        "500": _error("Catalog failure"),
                    },
                }
            },
            "/render_moment": {
                "post": {
                    "summary": "Render and export a moment from an editor snapshot",
                    "operationId": "renderMoment",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/RenderMomentRequest"}
                            }
                        },
                    },
                    "responses": {
                        "200": {
                            "description": "PNG attachment, or the blob URL when outputDestination is 'blob'",
                            "content": {
                                "image/png": {"schema": {"type": "string", "format": "binary"}},
                                "application/json": {
                                    "schema": {"$ref": "#/components/schemas/RenderMomentResponse"}
                                },
                            },
                        },
                        "400": _error("Invalid snapshot or unloadable image"),
                        "500": _error("Rendering or storage failure"),
                    },
                }
            },
        },
        "components": components,
    }
    return spec


def generate_openapi() -> None:
    spec = build_openapi()
    write_json_yaml(spec, SPECS / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under src/specs/")


if __name__ == "__main__":
    main()
