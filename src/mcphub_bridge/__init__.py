"""MCPHub bridge - runtime provisioning and Claude desktop config reconciliation."""

__version__ = "0.1.0"
