from fastapi import APIRouter

from app.services.templates import get_template_variables, list_templates

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", summary="List available templates")
async def templates_index() -> dict:
    return {"templates": list_templates()}


@router.get("/{filename}/variables", summary="List the tokens a template references")
async def template_variables(filename: str) -> dict:
    return {"template": filename, "variables": sorted(get_template_variables(filename))}
