from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="embedding-clustering",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Embedding clustering engine with k-means, DBSCAN, hierarchical and GNN backends",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24.0",
        "httpx>=0.25.0",  # analytics service and vector store HTTP API
        "tenacity>=8.2.0",
        "python-dotenv>=1.0.0",
        "openai>=1.0.0",  # OpenAI-compatible chat for LLM theme labels
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
        ]
    },
)
