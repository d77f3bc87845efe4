# todoboard: keeps a JSON board document and its rendered surface in sync
#
# Components:
#   schema.py      - Data model (Board, Column, Card) and error taxonomy
#   store.py       - JSON document persistence (load / apply_and_persist)
#   protocol.py    - UI message taxonomy and wire encoding
#   reorder.py     - Drag sessions, drop-index computation, move messages
#   dispatcher.py  - Pure reducer + single ordered mutation queue
#   events.py      - Event bridge for snapshots and persistence results
#   mirror.py      - Render-side copy of the board
#   prompts.py     - Pending title prompts for add-column / add-card
#   watcher.py     - watchdog change notifications for the document
#   host.py        - Process wiring (dispatcher loop thread, watcher)
#   server.py      - Flask JSON API and CLI entry point
