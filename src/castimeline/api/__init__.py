"""Local authoring server: session auth, event CRUD, image uploads, static files."""
