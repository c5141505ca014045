import logging

from fastapi import FastAPI

from xsrf_filter.core.config import settings
from xsrf_filter.security.xsrf import reload_xsrf_policy
from xsrf_filter.middleware.xsrf import XsrfMiddleware

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.app_name, version=settings.app_version)

# Install the XSRF policy from configuration
reload_xsrf_policy(settings)

# Add XSRF middleware
app.add_middleware(XsrfMiddleware)


@app.api_route("/health", methods=["GET", "HEAD"])
def health():
    return {
        "status": "ok",
        "version": settings.app_version,
        "xsrfProtection": settings.protection_enabled,
        "xsrfDisabledBy": settings.protection_disabled_by,
    }
