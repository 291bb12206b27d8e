from domshell.mcp.server import main

main()
