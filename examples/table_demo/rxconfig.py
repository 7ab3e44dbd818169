"""Reflex configuration for the table demo app."""

import reflex as rx

config = rx.Config(
    app_name="table_demo",
    plugins=[rx.plugins.SitemapPlugin()],
)
