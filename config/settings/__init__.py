"""Settings package for the Stayline project.

`base.py` contains configuration shared across environments. The
`dev.py`, `prod.py` and `test.py` modules extend base settings with
environment specific overrides.
"""
