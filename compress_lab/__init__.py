"""
compress_lab - experimental still-image compression.

Two independent strategies:
- core: a complex-valued block autoencoder trained by gradient descent
- evolution: a genetic search for Kronecker-product image factorizations

Run `python -m compress_lab --help` for the command line.
"""

__version__ = '0.1.0'
