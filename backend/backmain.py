from contextlib import asynccontextmanager
from fastapi import FastAPI
from backend.routers import rou_auth, rou_mail, rou_pages
from backend.configuration.monitor import instrument_fastapi
from backend.services.svc_scheduler import ensure_mail_scheduler, get_mail_scheduler, shutdown_mail_scheduler

@asynccontextmanager
async def lifespan(app: FastAPI):
    # One scheduler per application lifespan, released again on exit
    ensure_mail_scheduler()
    app.state.mail_scheduler = get_mail_scheduler()
    yield
    shutdown_mail_scheduler()

app = FastAPI(
    title="PT Coach API",
    description="API for the personal training platform",
    version="1.0.0",
    lifespan=lifespan
)

# Include all routers
app.include_router(rou_auth.router)
app.include_router(rou_mail.router)
app.include_router(rou_pages.router)

rou_pages.register_error_pages(app)

# Instrument app with Azure Monitor
instrument_fastapi(app)

if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host='0.0.0.0', port=8000)
