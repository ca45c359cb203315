"""AWS credential resolution for Amazon Bedrock callers.

Detects the runtime platform, picks a credential strategy (platform role,
local SSO, or static/default chain) and reports credential status.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
