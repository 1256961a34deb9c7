"""
CodeMaker - QR marker page layout, sync and lock engine.

Two halves live in this package:
  - the page service (FastAPI app in `codemaker.main`, flat RPC router,
    page lock rules, page key codec, SQLite store)
  - the editor engine (`codemaker.editor`): marker placement, tick box and
    audio area layers, pointer/keyboard state machine, optimistic sync
    client and PDF export
"""

__version__ = "1.0.0"
