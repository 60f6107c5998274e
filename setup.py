from setuptools import setup, find_packages
from pathlib import Path

setup(
    name="floorplan_annotation",
    version=Path("./floorplan_annotation/VERSION").read_text().strip(),
    packages=find_packages(include=["floorplan_annotation", "floorplan_annotation.*"]),
    package_data={"floorplan_annotation": ["VERSION"]},
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "opencv-python-headless",
        "Pillow",
        "easydict",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "floorplan_annotation = floorplan_annotation.cli:main",
        ],
    },
)
