import os
import sys

# Make the package importable without installing
sys.path.insert(0, os.path.abspath(".."))

project   = "mindset"
copyright = "2026, mindset contributors"
author    = "mindset contributors"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",       # NumPy-style Parameters / Raises sections
    "sphinx_autodoc_typehints",
    "sphinx_copybutton",
]

html_theme = "sphinx_rtd_theme"

autodoc_member_order    = "bysource"
autodoc_typehints       = "description"
always_document_param_types = True

napoleon_use_param  = True
napoleon_use_rtype  = False
