from setuptools import setup, find_namespace_packages

setup(
    name="dock-docs",
    version="0.1.0",
    description="Generate README documentation from Dockerfile magic comments and image analysis",
    packages=find_namespace_packages(where="src", include=["dockdocs", "dockdocs.*"]),
    package_dir={"": "src"},
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "click>=8.0",
        "tenacity>=8.0",
        "jinja2>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dock-docs=dockdocs.CLI.main:main",
        ],
    },
)
