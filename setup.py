# setup.py
from setuptools import setup, find_packages
from pathlib import Path
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="parapdf",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src", include=["parapdf", "parapdf.*"]),
    author="Phuoc Nguyen",
    description="Build a PDF that repeats one image on every page, using parallel worker processes.",
    long_description=long_description,
    long_description_content_type='text/markdown',
    python_requires=">=3.8",

    install_requires=[
        "PyMuPDF",
        "tqdm",
        "Pillow",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'parapdf=parapdf.cli:main',
        ],
    },
)
