"""Cosmos wallet system for Agent Cosmos AI.

Derives the agent's wallet from a mnemonic or an encrypted keystore,
queries bank balances through cosmpy, values them in USD, and sends
native-token transfers, optionally through a human-approval queue.
"""
