"""
Example DinosaurService, to demonstrate dependency injection.
"""

from typing import Any, Dict, List, Optional

from dactyl import InjectionScope, injectable


@injectable(InjectionScope.SINGLETON)
class DinosaurService:
    def __init__(self):
        self._dinosaurs: List[Dict[str, Any]] = [
            {"id": 0, "name": "Tyrannosaurus Rex", "period": "Maastrichtian"},
            {"id": 1, "name": "Velociraptor", "period": "Cretaceous"},
            {"id": 2, "name": "Diplodocus", "period": "Oxfordian"},
        ]

    def get_all(self) -> List[Dict[str, Any]]:
        return self._dinosaurs

    def get_by_id(self, dinosaur_id: int) -> Optional[Dict[str, Any]]:
        for dinosaur in self._dinosaurs:
            if dinosaur["id"] == dinosaur_id:
                return dinosaur
        return None

    def add(self, name: str, period: str) -> Dict[str, Any]:
        dinosaur = {"id": len(self._dinosaurs), "name": name, "period": period}
        self._dinosaurs.append(dinosaur)
        return dinosaur
