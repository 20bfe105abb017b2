"""usageboard ASGI server package."""
