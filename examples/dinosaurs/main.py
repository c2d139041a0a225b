"""
Run with:

    python examples/dinosaurs/main.py

then try ``curl localhost:8000/dinosaurs``.
"""

from dactyl import Application, ApplicationConfig, ConfigLoader

from controller import DinosaurController
from service import DinosaurService


app = Application(ApplicationConfig(
    controllers=[DinosaurController],
    injectables=[DinosaurService],
    settings=ConfigLoader.load(),
))


if __name__ == "__main__":
    app.run()
