from setuptools import setup, find_packages

setup(
    name="lottie2video",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "ffmpeg-python",
        "rich>=13.0.0",  # Explicit minimum version
        "psutil",
        "playwright>=1.40",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "lottie2video=lottie2video.__main__:main",
        ],
    },
    python_requires=">=3.9",
)
