from companies_house_mcp.bridge.cli import main

main()
