"""
PDF read-along narration.

Sentence segmentation, page–audio synchronisation, error recovery,
narration playback, and audio export for reading a PDF aloud while
following along page by page.

Subpackages are imported explicitly (``narration.sync``,
``narration.errors``, ``narration.pipeline``) so that ``core`` can
depend on the error taxonomy without import cycles.
"""
