import os
import sys

sys.path.insert(0, os.path.abspath(".."))

# Configuration file for the Sphinx documentation builder.
#
# For the full list of built-in configuration values, see the documentation:
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Project information -----------------------------------------------------

project = "dnssdkit"
copyright = "2025, dnssdkit"
author = "dnssdkit"
release = "0.1"

# -- General configuration ---------------------------------------------------

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx_rtd_theme",
    "sphinx_multiversion",
]

templates_path = ["_templates"]
exclude_patterns = [
    "_build",
    "Thumbs.db",
    ".DS_Store",
    "**/*_unittest.py",
    "**/*_e2etest.py",
    "**/test/**",
]

autodoc_member_order = "bysource"

# -- Options for HTML output -------------------------------------------------

html_theme = "sphinx_rtd_theme"
html_static_path = ["_static"]

# Sphinx-multiversion settings
smv_tag_whitelist = r"^v\d+\.\d+(\.\d+)?$"
smv_branch_whitelist = r"^(main|develop)$"
smv_latest_version = "main"
smv_remote_whitelist = r"^origin$"
smv_prefer_remote_refs = True
smv_outputdir_format = "{ref.name}"
