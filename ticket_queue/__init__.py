"""Walk-up queue ticketing.

Visitors take sequential ticket numbers (via the QR link), staff call and
complete numbers from a console, and displays show the number being served.

- `QueueService` (ticket_queue.service): the queue rules, single writer
- `QueueStore` backends (ticket_queue.store): in-memory and sqlite
- `Broadcaster` (ticket_queue.broadcast): pushes status to observers
- `MqttQueueServer` (ticket_queue.server): MQTT request/response + updates

See `python -m ticket_queue.app -h` for how to run.
"""
