"""Publish worker: commits an approved timeline dataset to a GitHub repository."""
