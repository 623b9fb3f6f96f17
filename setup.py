"""Setup script for whosfree."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, separating test-only dependencies
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
dev_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text().strip().split("\n"):
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            dev_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="whosfree",
    version="0.1.0",
    description="Group free/busy availability from weekly ICS calendar feeds",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*", "docs*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": dev_requirements,
        "dev": dev_requirements,
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Programming Language :: Python :: 3",
        "Topic :: Office/Business :: Scheduling",
        "Framework :: AsyncIO",
    ],
    keywords="calendar ics availability free-busy aiohttp",
    entry_points={
        "console_scripts": [
            "whosfree=whosfree.__main__:main",
        ],
    },
    zip_safe=False,
)
