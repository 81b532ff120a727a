from setuptools import setup, find_packages

setup(
    name="keccak-sha3",
    version="0.1.0",
    description="SHA3-256 on a from-scratch Keccak-f[1600] with NumPy, C and JAX backends",
    packages=find_packages(include=["keccak_sha3*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24.0",
    ],
    extras_require={
        "jax": ["jax>=0.4.0", "jaxlib>=0.4.0"],
        "tpu": ["jax[tpu]"],
        "dev": ["pytest>=7.0.0"],
        "all": ["jax>=0.4.0", "jaxlib>=0.4.0", "pytest>=7.0.0"],
    },
    entry_points={
        "console_scripts": [
            "keccak-sha3=keccak_sha3.main:main",
        ],
    },
)
