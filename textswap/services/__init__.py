"""Services for textswap-service.

Services:
- editing: TextEditingService (the operations behind the HTTP API)
- prompts: instruction builders
- images: image reference validation and encoding
"""

__all__: list[str] = []
