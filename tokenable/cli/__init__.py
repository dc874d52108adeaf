# tokenable/cli/__init__.py
