from setuptools import setup, find_packages

# Read the contents of README.md for the long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

requirements = [
    "click>=8.1.7",
    "httpx>=0.27.0",
    "langchain_core>=0.3.5",
    "litellm>=1.50.0",
    "openai>=1.40.0",
    "pydantic>=2.7.0",
    "python-dotenv>=1.0.1",
    "rich>=13.8.1",
]

test_requirements = [
    "pytest>=8.3.2",
    "pytest-asyncio>=0.23.0",
    "pytest-mock>=3.14.0",
]

setup(
    name="cursed-reviewer",
    version="0.3.0",
    description="Cursed Reviewer: code review findings, curse scores and validated patches from a generative model",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "docs"]),
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Topic :: Software Development :: Quality Assurance",
    ],
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "cursed-reviewer=cursed_reviewer.cli:cli",
        ],
    },
    include_package_data=True,
    keywords=[
        "code review",
        "static analysis",
        "linting",
        "LLM",
        "CLI",
    ],
    license="MIT",
)
