"""Job runtime: plan filtering, execution block construction and lifecycle control.

A job narrows an agent's master plan down to the task ids a caller enqueued,
then walks the resulting plan one synchronization group at a time.  Each group
is expanded into an execution block whose units are handed to whatever
executor listens for applied blocks.
"""
