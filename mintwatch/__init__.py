"""
MintWatch: real-time triage of newly created Solana token mints.

Listens to program logs for token-creation events, queues detections under
backpressure, and runs a timeout-bounded battery of heuristic checks to
produce one risk score and verdict per token. Modular architecture with clear
separation between listener, queue/worker, analysis engine and RPC clients.
"""

__version__ = "0.1.0"
