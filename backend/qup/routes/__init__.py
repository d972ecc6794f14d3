"""
Qup Backend - REST Routes Package
===================================

Route Inventory (all under /api/v1 except /health):
    - auth.py:          register, login, refresh, logout, me
    - users.py:         list, detail, update self, change role, delete
    - channels.py:      CRUD, join, leave, members
    - messages.py:      list per channel, CRUD, replies
    - questions.py:     list/filter, CRUD, answers, best answer, close
    - votes.py:         cast, change, delete, list per target, totals
    - files.py:         upload, metadata, download, delete
    - notifications.py: list, unread count, mark read, delete
    - search.py:        GET /api/v1/search
    - health.py:        GET /health

Routes are thin: parse the request, call one service, shape the response.
"""
