from pathlib import Path
from fastapi import APIRouter, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
from backend.configuration.config import Config
from backend.configuration.monitor import log_exception

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "pages"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["Pages"])

def wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")

@router.get("/paket-satin-al/loading", response_class=HTMLResponse)
def package_purchase_loading(request: Request):
    """Placeholder markup shown while the package list is loading"""
    return templates.TemplateResponse(
        request,
        "package_purchase_loading.html",
        {"app_name": Config.APP_NAME, "card_count": 3},
    )

async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Browsers get the 404 page; everything else keeps the default JSON error"""
    if exc.status_code == 404 and wants_html(request):
        return templates.TemplateResponse(
            request,
            "not_found.html",
            {"app_name": Config.APP_NAME},
            status_code=404,
        )
    return await http_exception_handler(request, exc)

async def unhandled_error_handler(request: Request, exc: Exception):
    """
    Last-resort handler for errors raised while serving a request.

    The error is logged; browsers get a page whose retry button reloads the
    failed URL, API clients a JSON 500.
    """
    log_exception(exc, {
        "operation": "unhandled_request_error",
        "method": request.method,
        "path": request.url.path
    })
    if wants_html(request):
        return templates.TemplateResponse(
            request,
            "error.html",
            {"app_name": Config.APP_NAME, "retry_url": str(request.url)},
            status_code=500,
        )
    return JSONResponse(status_code=500, content={"detail": "Bir şeyler yanlış gitti"})

def register_error_pages(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, not_found_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
