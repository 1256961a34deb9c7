"""
Editor engine: everything the page designer does locally before and while
talking to the page service.

`EditorSession` is the entry point; it owns the document state, the marker
controller, the annotation layers, the interaction state machine and the
sync client.
"""
