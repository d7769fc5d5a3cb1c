"""k2think -- streaming dialog client for the K2Think chat service.

Subpackages:
    auth     - cookie encoding and credential files
    api      - HTTP transport, SSE decoding, chat providers
    dialog   - conversation thread and dialog session
    methods  - structured JSON methods on top of a dialog session
"""

__version__ = "1.0.0"
