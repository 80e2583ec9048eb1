import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="estra",
    version="1.0.0",
    author="Romain Brégier",
    author_email="romain.bregier@naverlabs.com",
    description="Rigid transformation estimation for ICP point cloud registration in PyTorch.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=["estra"],
    install_requires=[
        "torch>=1.13",
        "numpy",
    ],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
)
