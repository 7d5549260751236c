from setuptools import setup, find_packages

setup(
    name="structedit",
    version="0.1.0",
    packages=find_packages(include=["structedit", "structedit.*"]),
    install_requires=[
        "pyyaml",
        # Structural extraction
        "tree-sitter>=0.22",
        "tree-sitter-python",
        "tree-sitter-javascript",
        "tree-sitter-typescript",
        "tree-sitter-java",
        "tree-sitter-c",
        "tree-sitter-cpp",
        "tree-sitter-go",
        "tree-sitter-rust",
        "tree-sitter-ruby",
        "tree-sitter-php",
        "tree-sitter-c-sharp",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "structedit=structedit.cli:main",
        ],
    },
    description="Declarative structural edit resolution and change tracking.",
)
