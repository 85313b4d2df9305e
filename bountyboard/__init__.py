# Bounty board: shared kanban state with per-developer bounty payouts
#
# Components:
#   schema.py     - Data model (Task, Developer, AppState, TaskStatus)
#   validation.py - Task and completion form checks
#   kv.py         - Key-value backends (SQLite, in-memory)
#   document.py   - Board document codec, migration and partial recovery
#   gateway.py    - Persistence gateways (KV, HTTP) and export/import
#   recovery.py   - Retry with backoff, corrupted-document backups
#   reconcile.py  - Developer aggregate derivation, orphan cleanup, leaderboard
#   board.py      - BoardStore state container and mutations
#   writer.py     - Debounced writer
#   sweeper.py    - Periodic consistency sweep
#   client.py     - BoardClient wiring it all together
#   config.py     - YAML/env configuration
