from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="pairwise_ld",
    version="0.1",
    author="Marc-André Legault",
    author_email="legaultmarc@gmail.com",
    description=(
        "Pairwise linkage disequilibrium between rsids from remote "
        "phased VCFs."
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent"
    ],
    packages=find_packages(),
    package_data={"pairwise_ld.tests": ["test_data/*"]},
    python_requires=">=3.9",
    install_requires=[
        "cyvcf2",
        "httpx",
        "numpy",
        "pandas",
        "tqdm"
    ],
    extras_require={
        "plot": ["matplotlib"],
        "test": ["pytest", "pysam"],
    },
    entry_points={
        "console_scripts": [
            "pairwise-ld=pairwise_ld.cli:main"
        ]
    }
)
