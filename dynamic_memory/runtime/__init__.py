"""
Chat windowing, page summarization and context reconstruction.
"""
