"""Services - one module per resource; plain functions over a Session."""
