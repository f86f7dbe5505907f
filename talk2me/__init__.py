"""Talk2Me - voice and text chat client for multimodal completion APIs."""

__version__ = "0.1.0"
