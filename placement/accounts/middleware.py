from .identity import DjangoSessionAuth, IdentityContext


class IdentityMiddleware:
    """Attach one IdentityContext per request as ``request.identity``."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if getattr(request, "identity", None) is None:
            request.identity = IdentityContext(DjangoSessionAuth(request))
        return self.get_response(request)
