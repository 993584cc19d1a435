"""API route handlers for textswap-service.

Routes:
- health: /health
- vision: /api/detect-text, /api/edit-image, /api/replace-text,
  /api/analyze-text, /api/batch-detect-text
"""

__all__: list[str] = []
