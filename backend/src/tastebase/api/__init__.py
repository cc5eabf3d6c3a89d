"""HTTP and ASGI surface."""
