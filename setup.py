from setuptools import setup, find_packages

setup(
    name="plate_console",
    version="0.1.0",
    packages=find_packages(include=["platecore*", "plateconfig*", "desktop_ui*"]),
    package_data={"desktop_ui": ["qml/*.qml"]},
    install_requires=[
        "PySide6>=6.6",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    python_requires=">=3.10",
)
