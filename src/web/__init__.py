"""HTTP and WebSocket surface for the ThreadCraft workflow."""
