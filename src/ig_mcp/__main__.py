from ig_mcp import main

main()
