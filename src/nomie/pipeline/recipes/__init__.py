"""
Recipe request/response pipeline.

Image size negotiation, prompt building, response sanitizing and
text/math segmentation, wired together by RecipePipeline.
"""
