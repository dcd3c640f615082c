# Taskboard: Kanban board state, drag-and-drop core, and board API access
#
# Components:
#   schema.py    - Data model (Column, Task, Assignee, Priority, drag data)
#   geometry.py  - Points, rectangles, geometry providers
#   collision.py - Collision resolution for the active drag
#   reorder.py   - Pure list reordering helpers
#   state.py     - Board state store (columns, tasks, layout metric)
#   drag.py      - Drag session controller (optimistic moves + rollback)
#   api.py       - REST client for the board API
#   layout.py    - Fixed grid geometry for terminal/scripted front ends
#   loader.py    - Abortable board load and task detail fetch
#   detail.py    - Task detail panel state and history entries
#   store.py     - SQLite persistence behind the reference server
#   seed.py      - Demo board seed
#   config.py    - YAML + environment configuration
