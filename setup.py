from setuptools import setup, find_packages

setup(
    name="deltasync",
    version="0.1.0",
    description="Optimistic delta synchronization of keyed state between a server and its replicas",
    author="adamfilli",
    packages=find_packages(include=["deltasync", "deltasync.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.13",
)
