"""HTTP interface for the PDF to image converter."""
