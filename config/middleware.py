from django.conf import settings
from django.http import HttpResponse


class SimpleCorsMiddleware:
    """
    Minimal CORS middleware for the portal front end.
    Origins come from CORS_ALLOWED_ORIGINS (comma separated); "*" when unset.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.allowed = [o.strip() for o in getattr(settings, "CORS_ALLOWED_ORIGINS", "*").split(",") if o.strip()]

    def _origin_for(self, request):
        origin = request.headers.get("Origin")
        if "*" in self.allowed:
            return origin or "*"
        return origin if origin in self.allowed else None

    def __call__(self, request):
        if request.method == "OPTIONS":
            response = HttpResponse()
        else:
            response = self.get_response(request)

        origin = self._origin_for(request)
        if origin is None:
            return response
        response["Access-Control-Allow-Origin"] = origin
        response["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
        response["Access-Control-Allow-Headers"] = request.headers.get(
            "Access-Control-Request-Headers", "Content-Type, Authorization"
        )
        response["Access-Control-Allow-Credentials"] = "true"
        return response
