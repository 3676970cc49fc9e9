"""Security middleware: anti-crawl and cache-control headers."""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)

        # --- Anti-crawl header on every response ---
        response.headers["X-Robots-Tag"] = "noindex, nofollow"

        # --- Cache-Control ---
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            # Per-user data: browser may store but must revalidate each time
            response.headers["Cache-Control"] = "private, no-cache"
        elif "text/csv" in content_type:
            response.headers["Cache-Control"] = "no-store"

        return response
