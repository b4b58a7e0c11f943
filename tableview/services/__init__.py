"""
Services layer: render service client, remote sync adapter, address bar
history, bulk/row actions and the table controller that wires the engines
to a document
"""
