"""core/ -- Kernel: configuration. Imports nothing from api/, auth/ or cache/."""
