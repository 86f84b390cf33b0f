"""
Handlers module for inbound data-channel events.

The event_handlers module maps each realtime event kind to a reducer over the
CallView (transcript, speaking indicator, status, connection health).

Usage examples:
```python
from storycall.handlers import SessionEventDispatcher

dispatcher = SessionEventDispatcher()

@channel.on("message")
def on_message(message):
    dispatcher.dispatch(message)

print(dispatcher.view.transcript)
```
"""

from storycall.handlers.event_handlers import SessionEventDispatcher

__all__ = ["SessionEventDispatcher"]
