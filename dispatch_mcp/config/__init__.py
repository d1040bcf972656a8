"""Configuration module for Dispatch MCP.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- SSHConfigParser: Parses ~/.ssh/config files into hosts
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from dispatch_mcp.config.host_keys import HostKeyVerifier
from dispatch_mcp.config.main import Config
from dispatch_mcp.config.parser import SSHConfigParser
from dispatch_mcp.config.settings import Settings

__all__ = ["Config", "SSHConfigParser", "HostKeyVerifier", "Settings"]
