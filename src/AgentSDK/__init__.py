"""AgentSDK Python packages."""
