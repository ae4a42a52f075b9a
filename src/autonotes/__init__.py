"""Release notes autogeneration for AKS Windows VHD builds."""

__version__ = "0.1.0"
