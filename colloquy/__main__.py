from colloquy.main import main

main()
