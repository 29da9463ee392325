# checkout/catalog_service/main.py
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Catalog Service (dev mock)")


GAMES = {
    1: {"id": 1, "name": "Hollow Knight", "price": "14.99"},
    2: {"id": 2, "name": "Celeste", "price": "19.99"},
    3: {"id": 3, "name": "Disco Elysium", "price": "39.99"},
    4: {"id": 4, "name": "Hades", "price": "24.99"},
    5: {"id": 5, "name": "Outer Wilds", "price": "24.99"},
}

@app.get("/games/{game_id}")
def get_game(game_id: int):
    game = GAMES.get(game_id)
    if not game:
        raise HTTPException(status_code=404, detail="Game not found")
    return game
