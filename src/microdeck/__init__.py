"""microdeck: single-VM deployments driven by a Cloud Provider Interface."""

__version__ = "0.1.0"
