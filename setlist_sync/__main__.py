from setlist_sync.main import main

main()
