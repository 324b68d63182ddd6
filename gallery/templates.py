"""
Template rendering utilities
"""

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def render_template(
    request: Request, template_name: str, context: dict, status_code: int = 200
):
    """Render template with context"""
    return templates.TemplateResponse(
        request, template_name, context, status_code=status_code
    )
