"""
DDS-Web datasource package.

This package hosts the adapter that provisions DDS entities through a DDS-Web
gateway and decodes reader samples into time-series frames, together with the
HTTP host surface and CLI.
"""

from .__version__ import __frame_model_version__, __version__

__all__ = ["__version__", "__frame_model_version__"]
