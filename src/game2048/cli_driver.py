# cli_driver.py
# Play 2048 in the terminal against a local, in-memory game service.

from .core import GameState
from .logging_config import setup_logging
from .service import GameService
from .storage import InMemoryGameStore

DIRECTION_KEYS = {'W': 'up', 'A': 'left', 'S': 'down', 'D': 'right'}


def main(service: GameService = None):
    setup_logging("WARNING")
    service = service or GameService(InMemoryGameStore(ttl_seconds=None))

    # 1. Initialize game
    state = service.new_game()
    display_board_state(state)

    # 2. Game Loop
    while not state.game_over:
        move_input = input("Enter move (W/A/S/D for Up/Left/Down/Right, Q to quit): ").strip().upper()

        if move_input == 'Q':
            print("Quitting game.")
            break

        direction = DIRECTION_KEYS.get(move_input)
        if direction is None:
            print("Invalid input. Use W, A, S, D.")
            continue

        # 3. Move, spawn and update the won/game over flags
        previous_board = state.board
        state = service.move(state.id, direction)
        if state.board == previous_board:
            print("Move did not change the board. Try a different direction.")

        display_board_state(state)

    # 4. Game Ended
    print("\n--- Final Board State ---")
    display_board_state(state)
    if state.game_over:
        print("No more moves possible. Better luck next time!")
    return state


def display_board_state(state: GameState):
    """Prints the board, score, and game status to the console."""
    print(f"\nScore: {state.score}")
    if state.game_over:
        print("GAME OVER!")
    elif state.won:
        print("YOU WON! Keep going for a higher tile.")
    else:
        print("Status: IN_PROGRESS")

    for row in state.board:
        print("\t".join(map(str, row)))
    print("-" * (len(state.board) * 6))


if __name__ == "__main__":
    main()
