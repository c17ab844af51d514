from setuptools import setup, find_packages

setup(
    name="orbmatch",
    version="1.0.0",
    description="ORB feature export and ratio-test/RANSAC matching between images",
    author="orbmatch",
    packages=find_packages(include=["orbmatch", "orbmatch.*"]),
    install_requires=[
        "opencv-python>=4.8.0",
        "numpy>=1.24.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["orbmatch=orbmatch.cli:main"],
    },
    python_requires=">=3.9",
)
