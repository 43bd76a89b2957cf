"""Renderer: year-grouped card view models, HTML output and transitions."""
