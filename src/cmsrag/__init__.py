"""cmsrag: retrieval knowledge base for the CMS home health manual."""

__version__ = "0.1.0"
