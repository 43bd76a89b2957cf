"""API routers mounted by :func:`castimeline.api.app.create_app`."""
