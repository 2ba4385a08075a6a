"""Cash-flow projection and safe-spending engine."""
