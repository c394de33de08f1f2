from pathlib import Path

from fastapi.templating import Jinja2Templates

from blog.config import settings
from blog.flash import pop_flashes

TEMPLATES_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["site_name"] = settings.SITE_NAME
templates.env.globals["get_flashed_messages"] = pop_flashes


def render_mail(template_name: str, **context) -> str:
    """Render a plain-text email body from ``templates/emails``."""
    return templates.get_template(f"emails/{template_name}").render(
        site_name=settings.SITE_NAME, **context
    )
