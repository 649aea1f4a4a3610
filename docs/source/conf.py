import os
import sys
sys.path.insert(0, os.path.abspath('../..'))  # repo root, so boardroom_service and common import

# Sphinx configuration for the Boardroom Booking service API reference.
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------

project = 'Boardroom Booking Service'
copyright = '2025, Boardroom Booking maintainers'
author = 'Boardroom Booking maintainers'
release = '1.0.0'

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",   # numpy-style docstrings
    "sphinx.ext.viewcode",
    "sphinx.ext.autosummary",
]
autosummary_generate = True

# importing main.py creates tables; point autodoc at a throwaway database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("TESTING", "1")

templates_path = ['_templates']
exclude_patterns = []

# -- Options for HTML output -------------------------------------------------

html_theme = 'alabaster'
html_static_path = []
