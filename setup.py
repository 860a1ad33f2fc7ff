from setuptools import setup, find_packages


setup(
    name='torch_spkern',
    version='0.0.1',
    packages=find_packages(exclude=['tests', 'examples', 'docs']),
    install_requires=[
        'torch>=2.0.0',
        'numpy'
    ],
    extras_require={
        'test':['pytest','numpy','scipy'],
        'docs':['sphinx']
    }
)
