"""
Website Source - static front-end source acquisition.

This package discovers and downloads the HTML, CSS, JavaScript, images,
fonts and manifests a page references, tracks per-resource network outcomes
and packages everything into a single ZIP archive.
"""

__version__ = "1.0.0"
__author__ = "Website Source Team"
