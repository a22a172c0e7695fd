"""
PDF processing - position estimation, annotation geometry, the annotation
mapper and the PyMuPDF-backed extractor and renderer.
"""
