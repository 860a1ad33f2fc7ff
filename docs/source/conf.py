# Configuration file for the Sphinx documentation builder.
#
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys
sys.path.insert(0, os.path.abspath('../../'))

# -- Project information -----------------------------------------------------

project = 'torch-spkern'
copyright = '2024, torch-spkern developers'
author = 'torch-spkern developers'
release = '0.0.1'

# -- General configuration ---------------------------------------------------

# numpydoc-style docstrings throughout the package
extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.mathjax',
]

templates_path = ['_templates']
exclude_patterns = ['setup.py', 'tests', 'examples']

autodoc_member_order = 'bysource'
autodoc_mock_imports = ['scipy']

# -- Options for HTML output -------------------------------------------------

html_theme = 'alabaster'
html_static_path = []
