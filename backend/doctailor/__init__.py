"""Document tailoring backend.

Accepts a CV or cover letter, rewrites it for a target job with a generative
model in a detached background run, and exposes the run's progress, the
rewritten text, a coarse line diff and downloadable renderings over HTTP.
"""
