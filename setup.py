from setuptools import setup, find_packages


def read_requirements(path):
    with open(path) as rfp:
        return [
            i
            for i in rfp.read().split('\n')
            if not (i.startswith('#') or i.startswith('-r') or len(i) == 0)
        ]


setup(
    name='embedded-content',
    version='1.0.0',
    author='embedded-content',
    packages=find_packages(include=['embedproject', 'embedded_content', 'embedded_content.*']),
    install_requires=read_requirements('requirements/prod.txt'),
    extras_require={
        'test': read_requirements('requirements/dev.txt'),
    },
)
