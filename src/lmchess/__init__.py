"""
lmchess: play chess against an OpenAI-compatible LLM server.

Components:
- rules: immutable Position / MoveDescriptor over python-chess
- connection/llm_client: endpoint probing and raw move fetching across response dialects
- move_validator: staged matching of free-text replies to legal moves
- fallback: priority-bucketed legal move choice when the source is unusable
- history/game: undo/redo log and the turn state machine
- server/play: Flask API and terminal entry points
"""
