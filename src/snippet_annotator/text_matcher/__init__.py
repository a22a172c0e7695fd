"""
Text matching - normalization, edit distance and the ordered strategy chain
used to locate snippets in extracted page text.
"""
