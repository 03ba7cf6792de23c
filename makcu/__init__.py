"""Serial control of a mouse-emulating device: commands, button reports, async writer and mock port."""

__version__ = "0.1.1"
__all__ = ["__version__"]