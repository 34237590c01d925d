from topicli.app import main

main()
