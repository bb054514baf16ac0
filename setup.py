from setuptools import find_packages, setup

setup(
    name="ftp-linkfs",
    version="0.3.0",
    description="Synchronized blocking and asyncio file operations over FTP",
    author="Daniel T Sasser II",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aioftp>=0.22.0",
    ],
    entry_points={
        "console_scripts": [
            "ftp-linkfs=ftp_linkfs.__main__:main",
        ],
    },
    python_requires=">=3.10",
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "pyftpdlib",
            "build",
            "twine",
        ],
        "test": [
            "pytest",
            "pytest-asyncio",
            "pyftpdlib",
        ],
    },
)
