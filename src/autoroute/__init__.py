"""autoroute - cost-tiered model routing for OpenAI-compatible clients.

Modules:
    - routing: Multi-dimension prompt scoring and tier selection
    - proxy: Local reverse proxy that rewrites "auto" requests
    - usage: Per-model pricing and savings estimates
    - config: Proxy configuration from YAML and environment
"""

__version__ = "1.0.0"
