"""Conversation runtime: session store, flow context and dispatcher."""
