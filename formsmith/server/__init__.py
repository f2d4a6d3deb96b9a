from .server import FormServerApp, main

__all__ = ["FormServerApp", "main"]
