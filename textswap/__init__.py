"""textswap-service: text detection and replacement in images.

Vision and image-generation models are reached through one OpenAI-style
chat-completions endpoint, trying an ordered list of models per operation
until one answers.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
