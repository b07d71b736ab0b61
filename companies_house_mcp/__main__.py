from companies_house_mcp.main import main

main()
