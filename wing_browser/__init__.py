"""
Top-level package for the wing disc browser.

This package exposes the core architecture (records, filtering, selection,
viewport), the plot views and the Dash UI. Most code should import from
submodules such as:
    wing_browser.core
    wing_browser.views
    wing_browser.ui
"""

__all__: list[str] = []
